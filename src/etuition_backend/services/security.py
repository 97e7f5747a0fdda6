'''

'''
from datetime import datetime, timedelta, timezone
from typing import Optional, Annotated
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from ..common.config import settings
from ..common.exceptions import ForbiddenError, UnauthorizedError
from ..common.logger import log
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..models.token import TokenPayload
from .user_service import UserService

# --- JWT Handling ---
class JWTHandler:
    @staticmethod
    def create_access_token(
        subject: str,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta
        to_encode = {"sub": str(subject), "exp": expire}
        encoded_jwt = jwt.encode(
            to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM
        )
        return encoded_jwt

    @staticmethod
    def decode_token(token: str) -> TokenPayload | None:
        try:
            payload = jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM]
            )
            return TokenPayload(**payload)
        except (JWTError, ValueError) as e: # Catch Pydantic validation errors too
            log.warning(f"JWT decode/validation error: {e}")
            return None

# --- JWT Verification Dependency Function ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

async def verify_token_and_get_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    user_service: Annotated[UserService, Depends(UserService)]
    ) -> db_models.Users:
    """
    Dependency to verify the bearer JWT and resolve the calling user.
    Missing, unknown and blocked users all fail with 401.
    """
    token_data = JWTHandler.decode_token(token)
    if not token_data or not token_data.sub:
        log.warning("JWT decode failed or invalid token structure.")
        raise UnauthorizedError()

    user = await user_service.get_user_by_email(token_data.sub)

    if user is None:
        log.warning(f"User '{token_data.sub}' not found during token verification.")
        raise UnauthorizedError()

    if not user.is_active:
        log.warning(f"User '{token_data.sub}' is blocked.")
        raise UnauthorizedError("This account has been blocked.")

    log.info(f"JWT verified successfully for user: {user.email} (Role: {user.role})")
    return user


def authorize_roles(current_user: db_models.Users, allowed_roles: list[UserRole]) -> None:
    """
    Raises ForbiddenError if the user's role is not in the list.
    """
    allowed_role_values = [role.value for role in allowed_roles]
    if current_user.role not in allowed_role_values:
        log.warning(f"SECURITY: Unauthorized action by user {current_user.id} (Role: {current_user.role}). Required one of: {allowed_role_values}")
        raise ForbiddenError(f"User with role '{current_user.role}' is not authorized to perform this action.")


def require_roles(*roles: UserRole):
    """
    Builds a dependency that resolves the current user and checks their role.
    """
    async def dependency(
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)]
    ) -> db_models.Users:
        authorize_roles(current_user, list(roles))
        return current_user
    return dependency


optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

async def get_optional_user(
    token: Annotated[Optional[str], Depends(optional_oauth2_scheme)],
    user_service: Annotated[UserService, Depends(UserService)]
    ) -> db_models.Users | None:
    """Resolves the caller when a bearer token is sent; anonymous callers get None."""
    if not token:
        return None
    return await verify_token_and_get_user(token, user_service)
