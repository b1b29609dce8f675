"""
Booking coordinator against a real SQLite store.

Monday 2030-06-03 is used throughout; New York is on EDT (UTC-4), so the
seeded 09:00-12:00 window is 13:00Z-16:00Z.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from slotkeeper.core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    ExternalServiceException,
    NotFoundException,
    ValidationException,
)
from slotkeeper.integrations.calendar import InMemoryBusyCalendarSource
from slotkeeper.models import Booking, BookingStatus, Offering
from slotkeeper.services.booking_service import (
    BookingAttempt,
    BookingAttemptState,
    BookingRequest,
    BookingService,
    ParticipantInfo,
)

NEW_YORK = "America/New_York"
START = datetime(2030, 6, 3, 13, tzinfo=timezone.utc)


def make_request(
    start: datetime = START,
    end=None,
    tz: str = NEW_YORK,
    name: str = "Ada Lovelace",
    offering_id: str = "off-1",
) -> BookingRequest:
    return BookingRequest(
        offering_id=offering_id,
        start=start,
        end=end,
        timezone=tz,
        participant=ParticipantInfo(name=name, email="ada@example.com"),
    )


@pytest.fixture
def booking_service(db, settings) -> BookingService:
    return BookingService(db, settings)


class TestCreateBooking:
    def test_commits_and_attributes_resource(self, seed, booking_service):
        seed()

        booking = booking_service.create_booking(make_request())

        assert booking.resource_id == "res-a"
        assert booking.start_at == START
        assert booking.end_at == START + timedelta(hours=1)
        assert booking.status == BookingStatus.CONFIRMED.value
        assert booking.timezone == NEW_YORK
        assert [p.email for p in booking.participants] == ["ada@example.com"]

    def test_caller_supplied_end_must_match_duration(self, seed, booking_service):
        seed()

        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(make_request(end=START + timedelta(minutes=90)))

        assert exc_info.value.code == "DURATION_MISMATCH"

    def test_matching_end_is_accepted(self, seed, booking_service):
        seed()

        booking = booking_service.create_booking(make_request(end=START + timedelta(hours=1)))

        assert booking.end_at == START + timedelta(hours=1)

    def test_second_booking_for_same_slot_conflicts(self, seed, booking_service):
        seed()
        booking_service.create_booking(make_request())

        with pytest.raises(BookingConflictException) as exc_info:
            booking_service.create_booking(make_request(name="Grace Hopper"))

        assert exc_info.value.code == "BOOKING_CONFLICT"
        assert exc_info.value.status_code == 409

    def test_next_resource_takes_the_second_booking(self, seed, booking_service):
        seed(resource_ids=("res-a", "res-b"))

        first = booking_service.create_booking(make_request())
        second = booking_service.create_booking(make_request(name="Grace Hopper"))

        assert (first.resource_id, second.resource_id) == ("res-a", "res-b")
        with pytest.raises(BookingConflictException):
            booking_service.create_booking(make_request(name="Katherine Johnson"))

    def test_start_off_the_slot_grid_is_rejected(self, seed, booking_service):
        seed(buffer=15)

        # Grid is 09:00, 10:15, 11:30 local; 10:00 local is not on it
        with pytest.raises(BookingConflictException):
            booking_service.create_booking(make_request(start=START + timedelta(hours=1)))

        booking = booking_service.create_booking(make_request(start=START + timedelta(minutes=75)))
        assert booking.resource_id == "res-a"

    def test_start_must_be_minute_aligned(self, seed, booking_service):
        seed()

        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(make_request(start=START + timedelta(seconds=30)))

        assert exc_info.value.code == "START_NOT_MINUTE_ALIGNED"

    def test_outside_window_conflicts(self, seed, booking_service):
        seed()

        with pytest.raises(BookingConflictException):
            booking_service.create_booking(make_request(start=START + timedelta(hours=4)))

    def test_minimum_advance_is_enforced(self, seed, booking_service):
        seed(advance_min=120)

        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(make_request(), now=START - timedelta(hours=1))

        assert exc_info.value.code == "ADVANCE_BOOKING_MIN"

    def test_maximum_advance_is_enforced(self, seed, booking_service):
        seed(advance_max=60 * 24)

        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(make_request(), now=START - timedelta(days=2))

        assert exc_info.value.code == "ADVANCE_BOOKING_MAX"

    def test_offering_without_windows_is_not_found(self, seed, booking_service):
        seed(windows=())

        with pytest.raises(NotFoundException) as exc_info:
            booking_service.create_booking(make_request())

        assert exc_info.value.code == "NO_AVAILABILITY"

    def test_unknown_offering(self, booking_service):
        with pytest.raises(NotFoundException) as exc_info:
            booking_service.create_booking(make_request(offering_id="off-missing"))

        assert exc_info.value.code == "OFFERING_NOT_FOUND"

    def test_unknown_timezone(self, seed, booking_service):
        seed()

        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(make_request(tz="Mars/Olympus_Mons"))

        assert exc_info.value.code == "INVALID_TIMEZONE"

    def test_booking_through_sibling_offering_blocks_shared_resource(
        self, db, seed, booking_service
    ):
        seed()
        db.add(
            Offering(
                id="off-2",
                provider_id="prov-1",
                name="Follow-up",
                slot_duration_minutes=30,
                price_cents=2500,
            )
        )
        db.commit()
        booking_service.create_booking(make_request(offering_id="off-2"))

        with pytest.raises(BookingConflictException):
            booking_service.create_booking(make_request())


class TestCalendarBusy:
    def test_calendar_event_blocks_its_resource(self, db, settings, seed):
        seed(resource_ids=("res-a", "res-b"))
        calendar = InMemoryBusyCalendarSource()
        calendar.add_event("res-a", START + timedelta(minutes=30), START + timedelta(hours=2))
        service = BookingService(db, settings, calendar_source=calendar)

        booking = service.create_booking(make_request())

        assert booking.resource_id == "res-b"

    def test_failing_calendar_surfaces_as_external_error(self, db, settings, seed):
        class BrokenCalendar:
            def fetch_events(self, resource_ids, start, end):
                raise TimeoutError("calendar api timed out")

        seed()
        service = BookingService(db, settings, calendar_source=BrokenCalendar())

        with pytest.raises(ExternalServiceException) as exc_info:
            service.create_booking(make_request())

        assert exc_info.value.code == "CALENDAR_UNAVAILABLE"
        assert db.query(Booking).count() == 0


class TestCancelBooking:
    def test_cancel_frees_the_slot(self, seed, booking_service):
        seed()
        booking = booking_service.create_booking(make_request())

        cancelled = booking_service.cancel_booking(booking.id, reason="rescheduled")

        assert cancelled.status == BookingStatus.CANCELLED.value
        assert cancelled.cancelled_at is not None
        assert cancelled.cancellation_reason == "rescheduled"
        replacement = booking_service.create_booking(make_request(name="Grace Hopper"))
        assert replacement.resource_id == "res-a"

    def test_cancel_twice_is_rejected(self, seed, booking_service):
        seed()
        booking = booking_service.create_booking(make_request())
        booking_service.cancel_booking(booking.id)

        with pytest.raises(BusinessRuleException) as exc_info:
            booking_service.cancel_booking(booking.id)

        assert exc_info.value.code == "BOOKING_ALREADY_CANCELLED"

    def test_unknown_booking(self, booking_service):
        with pytest.raises(NotFoundException):
            booking_service.cancel_booking("bk-missing")


class TestListBookings:
    def test_filters_by_status(self, seed, booking_service):
        seed(resource_ids=("res-a", "res-b"))
        kept = booking_service.create_booking(make_request())
        dropped = booking_service.create_booking(make_request(name="Grace Hopper"))
        booking_service.cancel_booking(dropped.id)

        confirmed = booking_service.list_bookings_for_offering(
            "off-1", status=BookingStatus.CONFIRMED
        )
        everything = booking_service.list_bookings_for_offering("off-1")

        assert [b.id for b in confirmed] == [kept.id]
        assert {b.id for b in everything} == {kept.id, dropped.id}


class TestBookingAttempt:
    def test_terminal_states_do_not_move(self):
        attempt = BookingAttempt(offering_id="off-1")
        attempt.advance(BookingAttemptState.VALIDATING)
        attempt.advance(BookingAttemptState.COMMITTED)

        assert attempt.is_terminal
        assert attempt.history == [BookingAttemptState.REQUESTED, BookingAttemptState.VALIDATING]
        with pytest.raises(RuntimeError):
            attempt.advance(BookingAttemptState.REJECTED_CONFLICT)

    def test_cannot_commit_without_validating(self):
        with pytest.raises(RuntimeError):
            BookingAttempt(offering_id="off-1").advance(BookingAttemptState.COMMITTED)


def test_concurrent_bookings_for_last_slot_yield_one_winner(db, session_factory, settings, seed):
    """Booker B has read availability when booker A commits the same slot."""
    seed()
    service_a = BookingService(db, settings)
    other_session = session_factory()
    try:
        service_b = BookingService(other_session, settings)
        original_create = service_b.booking_repository.create_booking

        def create_after_competitor(**kwargs):
            service_a.create_booking(make_request(name="Grace Hopper"))
            return original_create(**kwargs)

        service_b.booking_repository.create_booking = create_after_competitor

        with pytest.raises(BookingConflictException):
            service_b.create_booking(make_request())
    finally:
        other_session.close()

    active = (
        db.query(Booking)
        .filter(Booking.offering_id == "off-1", Booking.status == BookingStatus.CONFIRMED.value)
        .all()
    )
    assert len(active) == 1
    assert active[0].participants[0].name == "Grace Hopper"
