'''
Pydantic models for tutor profiles.
'''
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import TutorStatus


class TutorCreate(BaseModel):
    """
    Validates the request body for creating a tutor profile.
    Email comes from the token; rating and review count are derived.
    """
    name: str = Field(..., min_length=1)
    photo_url: Optional[str] = None
    subjects: list[str] = Field(default_factory=list)
    qualifications: Optional[str] = None
    experience: Optional[str] = None
    location: Optional[str] = None

    model_config = ConfigDict(extra='forbid')

class TutorStatusUpdate(BaseModel):
    status: Literal['approved', 'rejected']

class TutorRead(BaseModel):
    id: UUID
    email: str
    name: str
    photo_url: Optional[str] = None
    subjects: list[str] = Field(default_factory=list)
    qualifications: Optional[str] = None
    experience: Optional[str] = None
    location: Optional[str] = None
    status: TutorStatus
    rating: Decimal
    review_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
