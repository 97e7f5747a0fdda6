'''
Pydantic models for users.
'''
from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..database.db_enums import UserRole, UserStatus
from ..common.security_utils import normalize_email


# --- User API Read Models ---

class UserRead(BaseModel):
    """
    Pydantic model for reading user data.
    Corresponds to the db_models.Users ORM model.
    """
    id: UUID
    email: str
    role: UserRole
    status: UserStatus
    name: Optional[str] = None
    photo_url: Optional[str] = None
    phone: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class UserRoleRead(BaseModel):
    role: UserRole


# --- User API Write Models ---

class UserCreate(BaseModel):
    """
    Signup payload. Only student and tutor accounts can be self-registered.
    """
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role: Literal['student', 'tutor'] = UserRole.STUDENT.value
    photo_url: Optional[str] = None
    phone: Optional[str] = None

    @field_validator('email')
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)

class UserUpdate(BaseModel):
    """
    Profile fields a user can change on their own account.
    Role and status are deliberately absent.
    """
    name: Optional[str] = Field(None, min_length=1)
    photo_url: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(extra='forbid')

class UserRoleUpdate(BaseModel):
    role: UserRole

class UserStatusUpdate(BaseModel):
    status: UserStatus
