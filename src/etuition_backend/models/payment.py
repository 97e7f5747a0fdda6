'''
Pydantic models for checkout and settlement.
'''
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# --- Gateway data ---

class CheckoutSessionCreated(BaseModel):
    url: str
    session_id: str

class CheckoutSessionInfo(BaseModel):
    """
    The parts of a gateway checkout session the settlement reads.
    """
    session_id: str
    payment_status: str
    payment_intent_id: Optional[str] = None
    amount_total: Optional[int] = None # minor units
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

# --- API Input Models ---

class CheckoutSessionCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    tutor_name: str = Field(..., min_length=1, alias='tutorName')
    student_email: EmailStr = Field(..., alias='studentEmail')
    application_id: UUID = Field(..., alias='applicationId')
    tuition_id: UUID = Field(..., alias='tuitionId')

    model_config = ConfigDict(populate_by_name=True)

# --- API Output Models ---

class CheckoutSessionRead(BaseModel):
    url: str
    session_id: str = Field(..., serialization_alias='sessionId')

class SettlementResult(BaseModel):
    """
    `success` is false only when the gateway reports the session unpaid.
    """
    success: bool
    message: str
    tuition_name: Optional[str] = Field(None, serialization_alias='tuitionName')
    tutor_name: Optional[str] = Field(None, serialization_alias='tutorName')
    transaction_id: Optional[str] = Field(None, serialization_alias='transactionId')
    already_recorded: bool = Field(False, serialization_alias='alreadyRecorded')

class PaymentRead(BaseModel):
    id: UUID
    transaction_id: str
    application_id: UUID
    tuition_id: UUID
    student_email: str
    tutor_email: str
    tutor_name: str
    tuition_name: str
    amount: Decimal
    currency: str
    payment_status: str
    paid_at: datetime

    model_config = ConfigDict(from_attributes=True)
