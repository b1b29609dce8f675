# backend/slotkeeper/schemas/booking.py
"""
Booking DTOs.

Bookings are requested as a start instant plus the timezone the booker
sees; the end is derived from the offering and may be echoed back but is
never trusted to differ.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import ConfigDict, EmailStr, Field, field_validator

from ..core.timezones import is_valid_timezone
from ._strict_base import StrictModel, StrictRequestModel


def check_timezone(value: str) -> str:
    if not is_valid_timezone(value):
        raise ValueError(f"Unknown timezone: {value}")
    return value


def require_utc_offset(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        raise ValueError("Datetime must include a UTC offset")
    return value


class BookingCreate(StrictRequestModel):
    offering_id: str = Field(..., min_length=1, max_length=26)
    start: datetime = Field(..., description="Slot start with UTC offset")
    end: Optional[datetime] = Field(None, description="Optional; must equal start + duration")
    timezone: str = Field(..., description="IANA timezone the booker is viewing")
    participant_name: str = Field(..., min_length=1, max_length=200)
    participant_email: EmailStr
    notes: Optional[str] = Field(None, max_length=1000)

    validate_timezone = field_validator("timezone")(check_timezone)
    validate_offsets = field_validator("start", "end")(require_utc_offset)


class BookingCancel(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=500)


class ParticipantResponse(StrictModel):
    id: str
    role: str
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True, extra="forbid")


class BookingResponse(StrictModel):
    id: str
    offering_id: str
    resource_id: Optional[str] = None
    start_at: datetime
    end_at: datetime
    timezone: str
    status: str
    notes: Optional[str] = None
    created_at: datetime
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
    participants: List[ParticipantResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True, extra="forbid")
