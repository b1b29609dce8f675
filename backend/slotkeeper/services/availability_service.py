# backend/slotkeeper/services/availability_service.py
"""
Availability read path.

Loads windows and busy time for an offering and runs the pure slot engine
over them. Nothing here writes or reserves anything; results are a
point-in-time view for display.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezones import ensure_utc
from ..domain import (
    BusyInterval,
    Slot,
    SlotOptions,
    WindowSpec,
    calculate_available_slots,
    collapse_duplicate_windows,
    is_slot_available,
    normalize_windows_for_offering,
)
from ..integrations.calendar import (
    BusyCalendarSource,
    NullBusyCalendarSource,
    collect_calendar_busy,
)
from ..models.offering import Offering
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AvailabilitySnapshot:
    """Windows and busy time for one offering as of one read."""

    offering: Offering
    windows: List[WindowSpec]
    busy: List[BusyInterval]


class AvailabilityService(BaseService):
    def __init__(
        self,
        db: Session,
        settings: Settings,
        calendar_source: Optional[BusyCalendarSource] = None,
    ):
        super().__init__(db)
        self.settings = settings
        self.calendar_source = calendar_source or NullBusyCalendarSource()
        self.offering_repository = RepositoryFactory.create_offering_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    def get_offering(self, offering_id: str) -> Offering:
        offering = self.offering_repository.get_active_with_provider(offering_id)
        if offering is None:
            raise NotFoundException(f"Offering {offering_id} not found", code="OFFERING_NOT_FOUND")
        return offering

    def load_snapshot(
        self,
        offering: Offering,
        range_start: datetime,
        range_end: datetime,
        include_calendar: bool = True,
    ) -> AvailabilitySnapshot:
        """
        Normalized windows plus busy intervals overlapping the range.

        Busy time is stored bookings of the provider and, when enabled,
        events from connected calendars of the offering's resources.
        """
        raw_windows = self.availability_repository.get_windows_for_offering(
            offering.provider_id, offering.id
        )
        windows = normalize_windows_for_offering(raw_windows, offering.id)
        if not windows:
            return AvailabilitySnapshot(offering=offering, windows=[], busy=[])

        busy = self.booking_repository.get_busy_intervals(
            offering.provider_id, range_start, range_end
        )
        if include_calendar and self.settings.calendar_busy_lookup_enabled:
            resource_ids = sorted({window.resource_id for window in windows})
            busy.extend(
                collect_calendar_busy(self.calendar_source, resource_ids, range_start, range_end)
            )
        return AvailabilitySnapshot(offering=offering, windows=windows, busy=busy)

    def _validate_range(self, range_start: datetime, range_end: datetime) -> None:
        if range_end <= range_start:
            raise ValidationException("Range end must be after range start", code="INVALID_RANGE")
        if range_end - range_start > timedelta(days=self.settings.max_slot_range_days):
            raise ValidationException(
                f"Range cannot exceed {self.settings.max_slot_range_days} days",
                code="RANGE_TOO_LARGE",
            )

    @BaseService.measure_operation("get_available_slots")
    def get_available_slots(
        self,
        offering_id: str,
        range_start: datetime,
        range_end: datetime,
        *,
        collapse: bool = True,
        now: Optional[datetime] = None,
    ) -> List[Slot]:
        """
        Open slots for an offering, sorted by start.

        With ``collapse`` set, identical (start, end) openings offered by
        several resources are shown once.
        """
        try:
            range_start = ensure_utc(range_start)
            range_end = ensure_utc(range_end)
        except ValueError as exc:
            raise ValidationException(str(exc), code="NAIVE_DATETIME")
        self._validate_range(range_start, range_end)

        offering = self.get_offering(offering_id)
        snapshot = self.load_snapshot(offering, range_start, range_end)
        if not snapshot.windows:
            return []

        options = SlotOptions(
            range_start=range_start,
            range_end=range_end,
            slot_duration=offering.slot_duration_minutes,
            slot_buffer=offering.slot_buffer_minutes or 0,
            advance_booking_min=offering.advance_booking_min_minutes or 0,
            advance_booking_max=offering.advance_booking_max_minutes,
        )
        slots = calculate_available_slots(snapshot.windows, snapshot.busy, options, now=now)
        self.logger.debug(
            "Computed %d slots for offering %s across %d windows and %d busy intervals",
            len(slots),
            offering_id,
            len(snapshot.windows),
            len(snapshot.busy),
        )
        return collapse_duplicate_windows(slots) if collapse else slots

    @BaseService.measure_operation("check_slot")
    def check_slot(
        self, offering_id: str, start: datetime, end: Optional[datetime] = None
    ) -> bool:
        """
        Advisory single-slot check; the booking transaction re-checks.

        ``end`` defaults to start plus the offering duration.
        """
        offering = self.get_offering(offering_id)
        try:
            start = ensure_utc(start)
            end = ensure_utc(end) if end is not None else None
        except ValueError as exc:
            raise ValidationException(str(exc), code="NAIVE_DATETIME")
        if end is None:
            end = start + timedelta(minutes=offering.slot_duration_minutes)
        snapshot = self.load_snapshot(offering, start, end)
        return is_slot_available(
            snapshot.windows,
            snapshot.busy,
            start,
            end,
            slot_duration=offering.slot_duration_minutes,
            slot_buffer=offering.slot_buffer_minutes or 0,
        )
