'''
API endpoints for tutor applications and the approval workflow.
'''
from typing import Annotated
from uuid import UUID
from fastapi import APIRouter, Depends, status

from ..database import models as db_models
from ..models import application as application_models
from ..services.security import verify_token_and_get_user
from ..services.application_service import ApplicationService


class ApplicationsAPI:
    """
    A class to encapsulate endpoints for applications.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/applications",
            tags=["Applications"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "",
                self.submit_application,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=application_models.InsertedId)
        self.router.add_api_route(
                "/mine",
                self.list_my_applications,
                methods=["GET"],
                response_model=list[application_models.ApplicationRead])
        self.router.add_api_route(
                "/tuition/{tuition_id}",
                self.list_tuition_applications,
                methods=["GET"],
                response_model=list[application_models.ApplicationRead])
        self.router.add_api_route(
                "/approve/{application_id}",
                self.approve_application,
                methods=["PATCH"],
                response_model=application_models.WorkflowMessage)
        self.router.add_api_route(
                "/reject/{application_id}",
                self.reject_application,
                methods=["PATCH"],
                response_model=application_models.WorkflowMessage)
        self.router.add_api_route(
                "/{application_id}",
                self.update_application,
                methods=["PATCH"],
                response_model=application_models.ApplicationRead)
        self.router.add_api_route(
                "/{application_id}",
                self.delete_application,
                methods=["DELETE"],
                response_model=application_models.WorkflowMessage)

    async def submit_application(
        self,
        application_data: application_models.ApplicationCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        application_service: Annotated[ApplicationService, Depends(ApplicationService)]
    ):
        """
        Applies to a tuition as the calling tutor.
        """
        application = await application_service.submit_application(application_data, current_user)
        return application_models.InsertedId(inserted_id=application.id)

    async def list_my_applications(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        application_service: Annotated[ApplicationService, Depends(ApplicationService)]
    ):
        return await application_service.list_for_tutor(current_user)

    async def list_tuition_applications(
        self,
        tuition_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        application_service: Annotated[ApplicationService, Depends(ApplicationService)]
    ):
        """
        Lists the applications received by a tuition. Restricted to its owner or an admin.
        """
        return await application_service.list_for_tuition(tuition_id, current_user)

    async def approve_application(
        self,
        application_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        application_service: Annotated[ApplicationService, Depends(ApplicationService)]
    ):
        """
        Approves an application, rejects the others for the same tuition and
        assigns the tuition. Repeating the call reports it as already processed.
        """
        return await application_service.approve_application(application_id, current_user)

    async def reject_application(
        self,
        application_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        application_service: Annotated[ApplicationService, Depends(ApplicationService)]
    ):
        return await application_service.reject_application(application_id, current_user)

    async def update_application(
        self,
        application_id: UUID,
        update_data: application_models.ApplicationUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        application_service: Annotated[ApplicationService, Depends(ApplicationService)]
    ):
        """
        Edits an application. Approved applications are read-only.
        """
        return await application_service.update_application(application_id, update_data, current_user)

    async def delete_application(
        self,
        application_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        application_service: Annotated[ApplicationService, Depends(ApplicationService)]
    ):
        """
        Withdraws an application. Approved applications cannot be deleted.
        """
        await application_service.delete_application(application_id, current_user)
        return application_models.WorkflowMessage(message="Application deleted.")


applications_api = ApplicationsAPI()
router = applications_api.router
