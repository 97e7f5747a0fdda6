'''
Pydantic models for tutor applications.
'''
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..database.db_enums import ApplicationStatus
from ..common.security_utils import normalize_email


class ApplicationCreate(BaseModel):
    """
    Validates the request body for applying to a tuition.
    """
    tuition_id: UUID = Field(..., alias='tuitionId')
    tutor_email: EmailStr = Field(..., alias='tutorEmail')
    tutor_name: str = Field(..., min_length=1, alias='tutorName')
    qualifications: Optional[str] = None
    experience: Optional[str] = None
    expected_salary: Optional[Decimal] = Field(None, gt=0, alias='expectedSalary')

    model_config = ConfigDict(populate_by_name=True, extra='forbid')

    @field_validator('tutor_email')
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)

class ApplicationUpdate(BaseModel):
    """
    Fields the applying tutor may edit while the application is not approved.
    """
    tutor_name: Optional[str] = Field(None, min_length=1, alias='tutorName')
    qualifications: Optional[str] = None
    experience: Optional[str] = None
    expected_salary: Optional[Decimal] = Field(None, gt=0, alias='expectedSalary')

    model_config = ConfigDict(populate_by_name=True, extra='forbid')

class ApplicationRead(BaseModel):
    id: UUID
    tuition_id: UUID
    tutor_email: str
    tutor_name: str
    qualifications: Optional[str] = None
    experience: Optional[str] = None
    expected_salary: Optional[Decimal] = None
    status: ApplicationStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class InsertedId(BaseModel):
    inserted_id: UUID = Field(..., serialization_alias='insertedId')

class WorkflowMessage(BaseModel):
    """
    Result of an approve/reject call. `already_processed` is true when the
    application had already left the pending state and nothing was written.
    """
    message: str
    already_processed: bool = False
