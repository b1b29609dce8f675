# backend/slotkeeper/services/booking_service.py
"""
Booking Transaction Coordinator.

The only write path for bookings. An attempt moves through
Requested -> Validating -> Committed | RejectedConflict | RejectedInvalid.

1. Outside any transaction: the offering must exist, and the start must be
   minute-aligned and inside the advance-booking bounds. A caller-supplied
   end must equal start + duration.
2. Inside a serializable transaction: windows and busy bookings are re-read,
   normalized and re-checked. The booking is attributed to the resource that
   admitted it.
3. The storage-level overlap constraint backs the check up. Its violations
   and serialization failures come back as Conflict, same as a failed check.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
import logging
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    NotFoundException,
    ValidationException,
)
from ..core.timezones import ensure_utc, is_valid_timezone
from ..database.transactions import TxResult, TxStatus, run_serializable
from ..domain import BusyInterval, find_available_resource, normalize_windows_for_offering
from ..integrations.calendar import BusyCalendarSource, collect_calendar_busy
from ..models.booking import Booking, BookingStatus
from ..models.offering import Offering
from ..models.payment import PaymentStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .availability_service import AvailabilityService
from .base import BaseService

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE_MESSAGE = "This time slot is no longer available"
NO_AVAILABILITY_MESSAGE = "No availability configured for this offering"


class BookingAttemptState(str, Enum):
    REQUESTED = "requested"
    VALIDATING = "validating"
    COMMITTED = "committed"
    REJECTED_CONFLICT = "rejected_conflict"
    REJECTED_INVALID = "rejected_invalid"


_TRANSITIONS: Dict[BookingAttemptState, FrozenSet[BookingAttemptState]] = {
    BookingAttemptState.REQUESTED: frozenset(
        {BookingAttemptState.VALIDATING, BookingAttemptState.REJECTED_INVALID}
    ),
    BookingAttemptState.VALIDATING: frozenset(
        {
            BookingAttemptState.COMMITTED,
            BookingAttemptState.REJECTED_CONFLICT,
            BookingAttemptState.REJECTED_INVALID,
        }
    ),
    BookingAttemptState.COMMITTED: frozenset(),
    BookingAttemptState.REJECTED_CONFLICT: frozenset(),
    BookingAttemptState.REJECTED_INVALID: frozenset(),
}


@dataclass
class BookingAttempt:
    offering_id: str
    state: BookingAttemptState = BookingAttemptState.REQUESTED
    history: List[BookingAttemptState] = field(default_factory=list)

    def advance(self, new_state: BookingAttemptState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal booking transition {self.state.value} -> {new_state.value}"
            )
        self.history.append(self.state)
        self.state = new_state

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]


@dataclass(frozen=True)
class ParticipantInfo:
    name: str
    email: str


@dataclass(frozen=True)
class BookingRequest:
    offering_id: str
    start: datetime
    timezone: str
    participant: ParticipantInfo
    end: Optional[datetime] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class PaymentRecordDraft:
    """Payment row persisted in the same transaction as its booking."""

    payment_intent_id: str
    amount_cents: int
    platform_fee_cents: int
    currency: str
    paid_at: datetime


class BookingService(BaseService):
    def __init__(
        self,
        db: Session,
        settings: Settings,
        calendar_source: Optional[BusyCalendarSource] = None,
        availability_service: Optional[AvailabilityService] = None,
    ):
        super().__init__(db)
        self.settings = settings
        self.availability_service = availability_service or AvailabilityService(
            db, settings, calendar_source
        )
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)

    def validate_slot_request(
        self,
        offering: Offering,
        start: datetime,
        end: Optional[datetime] = None,
        *,
        now: Optional[datetime] = None,
        check_advance_bounds: bool = True,
    ) -> tuple[datetime, datetime]:
        """
        Structural checks on a requested slot, before any transaction.

        Returns the UTC (start, end) pair, with end derived from the
        offering duration.

        Raises:
            ValidationException: unaligned start, wrong end, or outside advance bounds
        """
        if start.tzinfo is None:
            raise ValidationException("Start time must include a timezone offset")
        start = ensure_utc(start)
        if start.second or start.microsecond:
            raise ValidationException(
                "Start time must be aligned to a whole minute", code="START_NOT_MINUTE_ALIGNED"
            )

        expected_end = start + timedelta(minutes=offering.slot_duration_minutes)
        if end is not None:
            if end.tzinfo is None or ensure_utc(end) != expected_end:
                raise ValidationException(
                    f"Booking must last exactly {offering.slot_duration_minutes} minutes",
                    code="DURATION_MISMATCH",
                    details={"expected_end": expected_end.isoformat()},
                )

        if check_advance_bounds:
            now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
            min_minutes = offering.advance_booking_min_minutes or 0
            if start < now + timedelta(minutes=min_minutes):
                raise ValidationException(
                    f"Bookings must be made at least {min_minutes} minutes in advance",
                    code="ADVANCE_BOOKING_MIN",
                    details={"advance_booking_min_minutes": min_minutes},
                )
            max_minutes = offering.advance_booking_max_minutes
            if max_minutes is not None and start > now + timedelta(minutes=max_minutes):
                raise ValidationException(
                    f"Bookings cannot be made more than {max_minutes} minutes in advance",
                    code="ADVANCE_BOOKING_MAX",
                    details={"advance_booking_max_minutes": max_minutes},
                )
        return start, expected_end

    def _fetch_calendar_busy(
        self, offering: Offering, start: datetime, end: datetime
    ) -> List[BusyInterval]:
        """Calendar I/O happens before the write transaction opens."""
        if not self.settings.calendar_busy_lookup_enabled:
            return []
        windows = normalize_windows_for_offering(
            self.availability_repository.get_windows_for_offering(
                offering.provider_id, offering.id
            ),
            offering.id,
        )
        resource_ids = sorted({window.resource_id for window in windows})
        return collect_calendar_busy(
            self.availability_service.calendar_source, resource_ids, start, end
        )

    def commit_booking(
        self,
        offering: Offering,
        start: datetime,
        end: datetime,
        tz_name: str,
        participant: ParticipantInfo,
        notes: Optional[str] = None,
        payment: Optional[PaymentRecordDraft] = None,
    ) -> TxResult[Booking]:
        """
        Re-check and insert inside one serializable transaction.

        Returns a rejected result (never raises) for conflicts, missing
        availability and reused payment references.
        """
        calendar_busy = self._fetch_calendar_busy(offering, start, end)
        offering_id = offering.id
        provider_id = offering.provider_id
        duration = offering.slot_duration_minutes
        buffer = offering.slot_buffer_minutes or 0

        def work(db: Session) -> TxResult[Booking]:
            windows = normalize_windows_for_offering(
                self.availability_repository.get_windows_for_offering(provider_id, offering_id),
                offering_id,
            )
            if not windows:
                return TxResult.rejected(TxStatus.NOT_FOUND, NO_AVAILABILITY_MESSAGE)

            busy = self.booking_repository.get_busy_intervals(provider_id, start, end)
            busy.extend(calendar_busy)
            resource_id = find_available_resource(
                windows, busy, start, end, slot_duration=duration, slot_buffer=buffer
            )
            if resource_id is None:
                return TxResult.rejected(TxStatus.CONFLICT, SLOT_UNAVAILABLE_MESSAGE)

            booking = self.booking_repository.create_booking(
                offering_id=offering_id,
                resource_id=resource_id,
                start_at=start,
                end_at=end,
                timezone=tz_name,
                participant_name=participant.name,
                participant_email=participant.email,
                notes=notes,
            )
            if payment is not None:
                self.payment_repository.create_payment_record(
                    booking_id=booking.id,
                    payment_intent_id=payment.payment_intent_id,
                    amount_cents=payment.amount_cents,
                    platform_fee_cents=payment.platform_fee_cents,
                    currency=payment.currency,
                    status=PaymentStatus.SUCCEEDED,
                    paid_at=payment.paid_at,
                )
            return TxResult.committed(booking)

        return run_serializable(self.db, work)

    @BaseService.measure_operation("create_booking")
    def create_booking(self, request: BookingRequest, now: Optional[datetime] = None) -> Booking:
        """
        Create a booking for a free slot.

        Raises:
            NotFoundException: offering or its availability does not exist
            ValidationException: malformed request (not retryable as-is)
            BookingConflictException: slot taken at commit time (retry with a fresh slot)
        """
        attempt = BookingAttempt(offering_id=request.offering_id)
        offering = self.availability_service.get_offering(request.offering_id)

        try:
            if not is_valid_timezone(request.timezone):
                raise ValidationException(
                    f"Unknown timezone: {request.timezone}", code="INVALID_TIMEZONE"
                )
            start, end = self.validate_slot_request(offering, request.start, request.end, now=now)
        except ValidationException:
            attempt.advance(BookingAttemptState.REJECTED_INVALID)
            prometheus_metrics.inc_booking_attempt("invalid")
            raise
        attempt.advance(BookingAttemptState.VALIDATING)

        result = self.commit_booking(
            offering, start, end, request.timezone, request.participant, request.notes
        )
        return self._finish_attempt(attempt, result, start)

    def _finish_attempt(
        self, attempt: BookingAttempt, result: TxResult[Booking], start: datetime
    ) -> Booking:
        if result.ok and result.value is not None:
            attempt.advance(BookingAttemptState.COMMITTED)
            prometheus_metrics.inc_booking_attempt("committed")
            booking = result.value
            self.log_operation(
                "booking_committed",
                booking_id=booking.id,
                offering_id=attempt.offering_id,
                resource_id=booking.resource_id,
            )
            return booking

        if result.status is TxStatus.NOT_FOUND:
            attempt.advance(BookingAttemptState.REJECTED_INVALID)
            prometheus_metrics.inc_booking_attempt("invalid")
            raise NotFoundException(NO_AVAILABILITY_MESSAGE, code="NO_AVAILABILITY")

        attempt.advance(BookingAttemptState.REJECTED_CONFLICT)
        prometheus_metrics.inc_booking_attempt("conflict")
        self.logger.warning(
            "Booking conflict for offering %s at %s: %s",
            attempt.offering_id,
            start.isoformat(),
            result.reason,
        )
        raise BookingConflictException(
            SLOT_UNAVAILABLE_MESSAGE,
            details={"offering_id": attempt.offering_id, "start": start.isoformat()},
        )

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_with_participants(booking_id)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
        return booking

    def list_bookings_for_offering(
        self,
        offering_id: str,
        *,
        status: Optional[BookingStatus] = None,
        start_after: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
    ) -> List[Booking]:
        self.availability_service.get_offering(offering_id)
        return self.booking_repository.list_for_offering(
            offering_id,
            status=status.value if status else None,
            start_after=start_after,
            start_before=start_before,
        )

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> Booking:
        """Cancel is a state change; the row stays and stops blocking its slot."""
        booking = self.get_booking(booking_id)
        if booking.status == BookingStatus.CANCELLED.value:
            raise BusinessRuleException(
                "Booking is already cancelled", code="BOOKING_ALREADY_CANCELLED"
            )
        with self.transaction():
            booking.cancel(reason)
        self.log_operation("booking_cancelled", booking_id=booking.id)
        return booking
