'''
Pydantic models for tuition requests.
'''
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import TuitionStatus

# --- API Input Models ---

class TuitionCreate(BaseModel):
    """
    Validates the request body for posting a tuition request.
    The owning student is taken from the token, never from the payload.
    """
    subject: str = Field(..., min_length=1)
    class_level: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    salary: Decimal = Field(..., gt=0)
    days_per_week: Optional[int] = Field(None, ge=1, le=7)
    details: Optional[str] = None

    model_config = ConfigDict(extra='forbid')

class TuitionUpdate(BaseModel):
    """
    Editable fields of a tuition. Status only changes through the workflow.
    """
    subject: Optional[str] = Field(None, min_length=1)
    class_level: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = Field(None, min_length=1)
    salary: Optional[Decimal] = Field(None, gt=0)
    days_per_week: Optional[int] = Field(None, ge=1, le=7)
    details: Optional[str] = None

    model_config = ConfigDict(extra='forbid')

# --- API Read Models ---

class TuitionRead(BaseModel):
    id: UUID
    student_email: str
    subject: str
    class_level: str
    location: str
    salary: Decimal
    days_per_week: Optional[int] = None
    details: Optional[str] = None
    status: TuitionStatus
    applied_tutors: list[str] = Field(default_factory=list)
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
