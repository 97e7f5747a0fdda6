'''
API endpoints for Authentication including login and user creation (signup).
'''
from typing import Annotated
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm

from ..services.auth_service import LoginService
from ..services.user_service import UserService
from ..models import token as token_models
from ..models import user as user_models

class AuthRoutes:
    """
    A class to encapsulate all authentication and user creation endpoints.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/auth",
            tags=["Authentication"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
            "/login",
            self.login_for_access_token,
            methods=["POST"],
            response_model=token_models.Token,
            summary="Login for Access Token"
        )
        self.router.add_api_route(
            "/signup",
            self.signup,
            methods=["POST"],
            response_model=user_models.UserRead,
            status_code=status.HTTP_201_CREATED,
            summary="Student or Tutor Signup"
        )

    async def login_for_access_token(
        self,
        form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
        login_service: Annotated[LoginService, Depends(LoginService)]
    ):
        """
        Authenticates a user and returns an access token.
        Uses OAuth2PasswordRequestForm (username & password fields).
        """
        return await login_service.login_user(form_data)

    async def signup(
        self,
        user_data: user_models.UserCreate,
        user_service: Annotated[UserService, Depends(UserService)]
    ):
        """
        Registers a new student or tutor. The email is stored lowercase.
        """
        return await user_service.create_user(user_data)

# Create an instance of the class and export its router
auth_routes = AuthRoutes()
router = auth_routes.router
