'''
API endpoints for CRUD operations on tuition requests.
'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, Response, status

from ..database import models as db_models
from ..database.db_enums import TuitionStatus, UserRole
from ..models import tuition as tuition_models
from ..services.security import verify_token_and_get_user, require_roles
from ..services.tuition_service import TuitionService


class TuitionsAPI:
    """
    A class to encapsulate CRUD endpoints for tuition requests.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/tuitions",
            tags=["Tuitions"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.create_tuition,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=tuition_models.TuitionRead)
        self.router.add_api_route(
                "",
                self.list_tuitions,
                methods=["GET"],
                response_model=list[tuition_models.TuitionRead])
        self.router.add_api_route(
                "/mine",
                self.list_my_tuitions,
                methods=["GET"],
                response_model=list[tuition_models.TuitionRead])
        self.router.add_api_route(
                "/{tuition_id}",
                self.get_tuition,
                methods=["GET"],
                response_model=tuition_models.TuitionRead)
        self.router.add_api_route(
                "/{tuition_id}",
                self.update_tuition,
                methods=["PATCH"],
                response_model=tuition_models.TuitionRead)
        self.router.add_api_route(
                "/{tuition_id}",
                self.delete_tuition,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)
        self.router.add_api_route(
                "/{tuition_id}/publish",
                self.publish_tuition,
                methods=["PATCH"],
                response_model=tuition_models.TuitionRead)

    async def create_tuition(
        self,
        tuition_data: tuition_models.TuitionCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        """
        Posts a new tuition request. Restricted to students.
        """
        return await tuition_service.create_tuition(tuition_data, current_user)

    async def list_tuitions(
        self,
        tuition_service: Annotated[TuitionService, Depends(TuitionService)],
        status_filter: Annotated[Optional[TuitionStatus], Query(alias="status")] = None,
        subject: Annotated[Optional[str], Query()] = None,
        location: Annotated[Optional[str], Query()] = None,
        limit: Annotated[int, Query(ge=1, le=100)] = 50,
        skip: Annotated[int, Query(ge=0)] = 0
    ):
        """
        Public listing of tuition requests, newest first.
        """
        return await tuition_service.list_tuitions(status_filter, subject, location, limit, skip)

    async def list_my_tuitions(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        """
        Lists the tuitions posted by the calling student.
        """
        return await tuition_service.list_my_tuitions(current_user)

    async def get_tuition(
        self,
        tuition_id: UUID,
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        return await tuition_service.get_tuition_by_id_internal(tuition_id)

    async def update_tuition(
        self,
        tuition_id: UUID,
        update_data: tuition_models.TuitionUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        """
        Updates a tuition's details. Restricted to the owning student or an admin.
        """
        return await tuition_service.update_tuition(tuition_id, update_data, current_user)

    async def delete_tuition(
        self,
        tuition_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        """
        Deletes an unassigned tuition. Restricted to the owning student or an admin.
        """
        await tuition_service.delete_tuition(tuition_id, current_user)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    async def publish_tuition(
        self,
        tuition_id: UUID,
        current_user: Annotated[db_models.Users, Depends(require_roles(UserRole.ADMIN))],
        tuition_service: Annotated[TuitionService, Depends(TuitionService)]
    ):
        """
        Moves a pending tuition to active. **Admins only.**
        """
        return await tuition_service.publish_tuition(tuition_id, current_user)


# Instantiate the class and export its router
tuitions_api = TuitionsAPI()
router = tuitions_api.router
