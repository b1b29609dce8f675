# backend/slotkeeper/schemas/payment.py
"""Payment intent, confirmation and status DTOs."""

from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, EmailStr, Field, field_validator

from .booking import check_timezone, require_utc_offset
from ._strict_base import StrictModel, StrictRequestModel


class PaymentIntentCreate(StrictRequestModel):
    offering_id: str = Field(..., min_length=1, max_length=26)
    start: datetime
    end: Optional[datetime] = None
    timezone: str

    validate_timezone = field_validator("timezone")(check_timezone)
    validate_offsets = field_validator("start", "end")(require_utc_offset)


class PaymentIntentResponse(StrictModel):
    payment_intent_id: str
    client_secret: Optional[str] = None
    amount_cents: int
    platform_fee_cents: int
    currency: str
    start: datetime
    end: datetime


class PaymentConfirm(StrictRequestModel):
    offering_id: str = Field(..., min_length=1, max_length=26)
    start: datetime
    timezone: str
    payment_intent_id: str = Field(..., min_length=1, max_length=255)
    participant_name: str = Field(..., min_length=1, max_length=200)
    participant_email: EmailStr
    notes: Optional[str] = Field(None, max_length=1000)

    validate_timezone = field_validator("timezone")(check_timezone)
    validate_offsets = field_validator("start")(require_utc_offset)


class PaymentStatusResponse(StrictModel):
    booking_id: str
    payment_intent_id: str = Field(validation_alias="stripe_payment_intent_id")
    status: str
    amount_cents: int
    platform_fee_cents: int
    currency: str
    paid_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, extra="forbid", populate_by_name=True)


class WebhookAckResponse(StrictModel):
    received: bool = True
    event_type: str
    handled: bool
