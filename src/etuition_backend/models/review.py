'''
Pydantic models for tutor reviews.
'''
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ReviewCreate(BaseModel):
    tutor_id: UUID = Field(..., alias='tutorId')
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra='forbid')

class ReviewRead(BaseModel):
    id: UUID
    tutor_id: UUID
    student_email: str
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
