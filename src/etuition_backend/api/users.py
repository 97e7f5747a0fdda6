'''
API endpoints for user profiles and admin user management.
'''
from typing import Annotated, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query

from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models import user as user_models
from ..services.security import verify_token_and_get_user, require_roles
from ..services.user_service import UserService


class UserAPI:
    """Endpoints for the current user and for admins managing users."""
    def __init__(self):
        self.router = APIRouter(
            prefix="/users",
            tags=["Users"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/me",
                self.read_users_me,
                methods=["GET"],
                response_model=user_models.UserRead)
        self.router.add_api_route(
                "/me",
                self.update_users_me,
                methods=["PATCH"],
                response_model=user_models.UserRead)
        self.router.add_api_route(
                "/role",
                self.read_role,
                methods=["GET"],
                response_model=user_models.UserRoleRead)
        self.router.add_api_route(
                "",
                self.list_users,
                methods=["GET"],
                response_model=list[user_models.UserRead])
        self.router.add_api_route(
                "/{user_id}/role",
                self.update_role,
                methods=["PATCH"],
                response_model=user_models.UserRead)
        self.router.add_api_route(
                "/{user_id}/status",
                self.update_status,
                methods=["PATCH"],
                response_model=user_models.UserRead)

    async def read_users_me(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ):
        """
        Returns the profile information for the currently authenticated user.
        """
        return current_user

    async def update_users_me(
        self,
        update_data: user_models.UserUpdate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        """
        Updates the caller's profile fields. Role and status are not editable here.
        """
        return await user_service.update_profile(update_data, current_user)

    async def read_role(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ):
        return user_models.UserRoleRead(role=current_user.role)

    async def list_users(
        self,
        current_user: Annotated[db_models.Users, Depends(require_roles(UserRole.ADMIN))],
        user_service: Annotated[UserService, Depends(UserService)],
        role: Annotated[Optional[UserRole], Query(description="Optional filter by role")] = None
    ):
        """
        Lists all users. **Admins only.**
        """
        return await user_service.list_users(role)

    async def update_role(
        self,
        user_id: UUID,
        role_data: user_models.UserRoleUpdate,
        current_user: Annotated[db_models.Users, Depends(require_roles(UserRole.ADMIN))],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        """
        Changes a user's role. **Admins only.**
        """
        return await user_service.set_role(user_id, role_data.role, current_user)

    async def update_status(
        self,
        user_id: UUID,
        status_data: user_models.UserStatusUpdate,
        current_user: Annotated[db_models.Users, Depends(require_roles(UserRole.ADMIN))],
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        """
        Blocks or unblocks a user. **Admins only.**
        """
        return await user_service.set_status(user_id, status_data.status, current_user)


users_api = UserAPI()
router = users_api.router
