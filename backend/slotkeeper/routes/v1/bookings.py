# backend/slotkeeper/routes/v1/bookings.py
"""
Booking routes - API v1

Versioned booking endpoints under /api/v1/bookings.
All business logic delegated to BookingService.

Endpoints:
    GET / - List bookings of an offering
    POST / - Create a booking for a free slot
    GET /{booking_id} - Full booking details
    POST /{booking_id}/cancel - Cancel a booking
"""

import asyncio
from datetime import datetime
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, Query, status

from ...api.dependencies import get_booking_service
from ...core.exceptions import DomainException
from ...models.booking import BookingStatus
from ...schemas.booking import BookingCancel, BookingCreate, BookingResponse
from ...services.booking_service import BookingRequest, BookingService, ParticipantInfo
from .errors import handle_domain_exception

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["bookings-v1"])


@router.get("", response_model=List[BookingResponse])
async def list_bookings(
    offering_id: str = Query(..., description="Offering whose bookings to list"),
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    start_after: Optional[datetime] = Query(None),
    start_before: Optional[datetime] = Query(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[BookingResponse]:
    try:
        bookings = await asyncio.to_thread(
            booking_service.list_bookings_for_offering,
            offering_id,
            status=status_filter,
            start_after=start_after,
            start_before=start_before,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return [BookingResponse.model_validate(booking) for booking in bookings]


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """
    Create a booking.

    Returns 409 when the slot was taken by the time the booking committed;
    the client should refresh slots and pick again.
    """
    request = BookingRequest(
        offering_id=booking_data.offering_id,
        start=booking_data.start,
        end=booking_data.end,
        timezone=booking_data.timezone,
        participant=ParticipantInfo(
            name=booking_data.participant_name, email=str(booking_data.participant_email)
        ),
        notes=booking_data.notes,
    )
    try:
        booking = await asyncio.to_thread(booking_service.create_booking, request)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking_details(
    booking_id: str,
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: str,
    cancel_data: Optional[BookingCancel] = Body(None),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Cancel a booking; its slot becomes bookable again."""
    reason = cancel_data.reason if cancel_data else None
    try:
        booking = await asyncio.to_thread(booking_service.cancel_booking, booking_id, reason)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)
