# backend/slotkeeper/schemas/availability.py
"""Slot listing and single-slot check DTOs."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import ConfigDict, Field, model_validator

from ._strict_base import StrictModel, StrictRequestModel


class SlotResponse(StrictModel):
    start: datetime
    end: datetime
    resource_id: str

    model_config = ConfigDict(from_attributes=True, extra="forbid")


class SlotsResponse(StrictModel):
    """Open slots in start order, plus the same slots grouped by local date."""

    offering_id: str
    timezone: str
    slots: List[SlotResponse]
    by_date: Dict[str, List[SlotResponse]]


class SlotCheckRequest(StrictRequestModel):
    start: datetime = Field(..., description="Slot start with UTC offset")
    end: Optional[datetime] = Field(
        None, description="Slot end; defaults to start plus the offering duration"
    )

    @model_validator(mode="after")
    def _require_offsets(self) -> "SlotCheckRequest":
        if self.start.tzinfo is None or (self.end is not None and self.end.tzinfo is None):
            raise ValueError("start and end must include a UTC offset")
        if self.end is not None and self.end <= self.start:
            raise ValueError("end must be after start")
        return self


class SlotCheckResponse(StrictModel):
    available: bool
