# backend/slotkeeper/routes/v1/availability.py
"""
Availability routes - API v1

Endpoints:
    GET /{offering_id}/slots - Open slots in a range, flat and grouped by local date
    POST /{offering_id}/slots/check - Advisory check for a single slot
"""

import asyncio
from datetime import datetime
import logging

from fastapi import APIRouter, Depends, Query

from ...api.dependencies import get_availability_service
from ...core.exceptions import DomainException, ValidationException
from ...core.timezones import is_valid_timezone
from ...domain import Slot, group_slots_by_date
from ...schemas.availability import (
    SlotCheckRequest,
    SlotCheckResponse,
    SlotResponse,
    SlotsResponse,
)
from ...services.availability_service import AvailabilityService
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["availability-v1"])


@router.get("/{offering_id}/slots", response_model=SlotsResponse)
async def list_available_slots(
    offering_id: str,
    start: datetime = Query(..., description="Range start with UTC offset"),
    end: datetime = Query(..., description="Range end with UTC offset"),
    timezone: str = Query("UTC", description="IANA timezone used for by_date grouping"),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> SlotsResponse:
    """
    Open slots for an offering in ``[start, end)``.

    A display view only; nothing is reserved until a booking commits.
    """
    try:
        if not is_valid_timezone(timezone):
            raise ValidationException(f"Unknown timezone: {timezone}", code="INVALID_TIMEZONE")
        slots = await asyncio.to_thread(
            availability_service.get_available_slots, offering_id, start, end
        )
    except DomainException as e:
        handle_domain_exception(e)

    def to_response(slot: Slot) -> SlotResponse:
        return SlotResponse(start=slot.start, end=slot.end, resource_id=slot.resource_id)

    return SlotsResponse(
        offering_id=offering_id,
        timezone=timezone,
        slots=[to_response(slot) for slot in slots],
        by_date={
            day: [to_response(slot) for slot in day_slots]
            for day, day_slots in group_slots_by_date(slots, timezone).items()
        },
    )


@router.post("/{offering_id}/slots/check", response_model=SlotCheckResponse)
async def check_slot_availability(
    offering_id: str,
    check_data: SlotCheckRequest,
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> SlotCheckResponse:
    try:
        available = await asyncio.to_thread(
            availability_service.check_slot, offering_id, check_data.start, check_data.end
        )
    except DomainException as e:
        handle_domain_exception(e)
    return SlotCheckResponse(available=available)
