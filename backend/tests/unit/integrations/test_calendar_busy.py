from __future__ import annotations

from datetime import datetime, timezone

import pytest

from slotkeeper.core.exceptions import ExternalServiceException
from slotkeeper.domain import BusyInterval, busy_blocks_resource
from slotkeeper.integrations.calendar import (
    InMemoryBusyCalendarSource,
    NullBusyCalendarSource,
    collect_calendar_busy,
)

RANGE_START = datetime(2026, 6, 1, tzinfo=timezone.utc)
RANGE_END = datetime(2026, 6, 2, tzinfo=timezone.utc)


def utc(hour: int) -> datetime:
    return RANGE_START.replace(hour=hour)


def test_events_become_resource_tagged_busy_intervals():
    source = InMemoryBusyCalendarSource()
    source.add_event("res-a", utc(13), utc(14))
    source.add_event("res-b", utc(15), utc(16))
    # Outside the requested range
    source.add_event(
        "res-a",
        datetime(2026, 6, 3, 13, tzinfo=timezone.utc),
        datetime(2026, 6, 3, 14, tzinfo=timezone.utc),
    )

    busy = collect_calendar_busy(source, ["res-a", "res-b"], RANGE_START, RANGE_END)

    assert busy == [
        BusyInterval.for_resource(utc(13), utc(14), "res-a"),
        BusyInterval.for_resource(utc(15), utc(16), "res-b"),
    ]
    assert busy_blocks_resource(busy, "res-a") == [busy[0]]


def test_unattributed_interval_blocks_every_resource():
    shared = BusyInterval(utc(9), utc(10))
    tagged = BusyInterval.for_resource(utc(11), utc(12), "res-b")

    assert busy_blocks_resource([shared, tagged], "res-a") == [shared]
    assert busy_blocks_resource([shared, tagged], "res-b") == [shared, tagged]


def test_no_resources_skips_the_lookup():
    class ExplodingCalendar:
        def fetch_events(self, resource_ids, start, end):
            raise AssertionError("should not be called")

    assert collect_calendar_busy(ExplodingCalendar(), [], RANGE_START, RANGE_END) == []


def test_null_source_reports_nothing():
    assert collect_calendar_busy(NullBusyCalendarSource(), ["res-a"], RANGE_START, RANGE_END) == []


def test_provider_failure_is_wrapped():
    class BrokenCalendar:
        def fetch_events(self, resource_ids, start, end):
            raise ConnectionError("calendar api unreachable")

    with pytest.raises(ExternalServiceException) as exc_info:
        collect_calendar_busy(BrokenCalendar(), ["res-a"], RANGE_START, RANGE_END)

    assert exc_info.value.code == "CALENDAR_UNAVAILABLE"
    assert exc_info.value.details == {"resource_ids": ["res-a"]}
    assert isinstance(exc_info.value.__cause__, ConnectionError)
