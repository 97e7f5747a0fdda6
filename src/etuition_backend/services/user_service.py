'''

'''
from typing import Optional, Annotated
from uuid import UUID
from fastapi import Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole, UserStatus
from ..common.exceptions import BadRequestError, ConflictError, ForbiddenError, NotFoundError
from ..common.logger import log
from ..common.security_utils import HashedPassword, normalize_email
from ..models import user as user_models


class UserService:
    """
    Service for user accounts: signup, profile updates and admin management.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    # --- Internal Fetchers (No Auth) ---

    async def get_user_by_email(self, email: str) -> db_models.Users | None:
        """
        Fetches a user by email. Emails are compared lowercase.
        """
        log.info(f"Fetching user profile for email: {email}")
        try:
            stmt = select(db_models.Users).filter(db_models.Users.email == normalize_email(email))
            result = await self.db.execute(stmt)
            return result.scalars().first()
        except Exception as e:
            log.error(f"Database error fetching user by email {email}: {e}", exc_info=True)
            raise

    async def _get_user_by_id_internal(self, user_id: UUID) -> db_models.Users:
        log.info(f"Internal fetch for user by ID: {user_id}")
        user = await self.db.get(db_models.Users, user_id)
        if not user:
            raise NotFoundError("User not found.")
        return user

    # --- Write Methods ---

    async def create_user(self, user_data: user_models.UserCreate) -> db_models.Users:
        """
        Registers a new student or tutor account.
        Raises 409 if the email is already registered.
        """
        log.info(f"Attempting to register user {user_data.email} as {user_data.role}.")
        try:
            existing = await self.get_user_by_email(user_data.email)
            if existing:
                log.warning(f"Signup rejected, email already registered: {user_data.email}")
                raise ConflictError("A user with this email already exists.")

            new_user = db_models.Users(
                email=normalize_email(user_data.email),
                password=HashedPassword.get_hash(user_data.password),
                role=user_data.role,
                status=UserStatus.ACTIVE.value,
                name=user_data.name,
                photo_url=user_data.photo_url,
                phone=user_data.phone,
            )
            self.db.add(new_user)
            await self.db.flush()
            log.info(f"User {new_user.email} registered with ID {new_user.id}.")
            return new_user

        except HTTPException as http_exc:
            raise http_exc
        except Exception as e:
            log.error(f"Error registering user {user_data.email}: {e}", exc_info=True)
            raise

    async def update_profile(self, update_data: user_models.UserUpdate, current_user: db_models.Users) -> db_models.Users:
        """
        Applies profile-field changes to the caller's own account.
        """
        changes = update_data.model_dump(exclude_unset=True)
        if not changes:
            raise BadRequestError("No update data provided.")

        log.info(f"User {current_user.id} updating profile fields: {list(changes)}")
        for key, value in changes.items():
            setattr(current_user, key, value)
        self.db.add(current_user)
        await self.db.flush()
        return current_user

    # --- Admin Methods ---

    async def list_users(self, role: Optional[UserRole] = None) -> list[db_models.Users]:
        stmt = select(db_models.Users).order_by(db_models.Users.created_at.desc())
        if role is not None:
            stmt = stmt.filter(db_models.Users.role == role.value)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def set_role(self, user_id: UUID, role: UserRole, current_user: db_models.Users) -> db_models.Users:
        """Changes a user's role. Admins cannot demote themselves."""
        user = await self._get_user_by_id_internal(user_id)
        if user.id == current_user.id and role != UserRole.ADMIN:
            raise ForbiddenError("Admins cannot change their own role.")

        log.info(f"Admin {current_user.id} changing role of user {user_id} from {user.role} to {role.value}.")
        user.role = role.value
        self.db.add(user)
        await self.db.flush()
        return user

    async def set_status(self, user_id: UUID, new_status: UserStatus, current_user: db_models.Users) -> db_models.Users:
        """Blocks or unblocks a user. Admins cannot block themselves."""
        user = await self._get_user_by_id_internal(user_id)
        if user.id == current_user.id and new_status == UserStatus.BLOCKED:
            raise ForbiddenError("Admins cannot block their own account.")

        log.info(f"Admin {current_user.id} setting status of user {user_id} to {new_status.value}.")
        user.status = new_status.value
        self.db.add(user)
        await self.db.flush()
        return user
