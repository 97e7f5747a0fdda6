'''
API endpoints for tutor profiles.
'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from ..database import models as db_models
from ..database.db_enums import TutorStatus, UserRole
from ..models import tutor as tutor_models
from ..services.security import verify_token_and_get_user, require_roles, get_optional_user
from ..services.tutor_service import TutorService


class TutorsAPI:
    """
    A class to encapsulate endpoints for tutor profiles.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/tutors",
            tags=["Tutors"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "",
                self.create_tutor,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=tutor_models.TutorRead)
        self.router.add_api_route(
                "",
                self.list_tutors,
                methods=["GET"],
                response_model=list[tutor_models.TutorRead])
        self.router.add_api_route(
                "/{tutor_id}",
                self.get_tutor,
                methods=["GET"],
                response_model=tutor_models.TutorRead)
        self.router.add_api_route(
                "/{tutor_id}/status",
                self.update_status,
                methods=["PATCH"],
                response_model=tutor_models.TutorRead)

    async def create_tutor(
        self,
        tutor_data: tutor_models.TutorCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        tutor_service: Annotated[TutorService, Depends(TutorService)]
    ):
        """
        Submits the caller's tutor profile for admin approval.
        """
        return await tutor_service.create_tutor_profile(tutor_data, current_user)

    async def list_tutors(
        self,
        tutor_service: Annotated[TutorService, Depends(TutorService)],
        current_user: Annotated[db_models.Users | None, Depends(get_optional_user)],
        status_filter: Annotated[Optional[TutorStatus], Query(alias="status")] = None
    ):
        """
        Lists approved tutors. Admins may list any status.
        """
        return await tutor_service.list_tutors(current_user, status_filter)

    async def get_tutor(
        self,
        tutor_id: UUID,
        tutor_service: Annotated[TutorService, Depends(TutorService)]
    ):
        return await tutor_service.get_tutor(tutor_id)

    async def update_status(
        self,
        tutor_id: UUID,
        status_data: tutor_models.TutorStatusUpdate,
        current_user: Annotated[db_models.Users, Depends(require_roles(UserRole.ADMIN))],
        tutor_service: Annotated[TutorService, Depends(TutorService)]
    ):
        """
        Approves or rejects a tutor profile. **Admins only.**
        """
        return await tutor_service.set_status(tutor_id, TutorStatus(status_data.status), current_user)


tutors_api = TutorsAPI()
router = tutors_api.router
