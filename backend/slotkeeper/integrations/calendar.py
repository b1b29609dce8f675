# backend/slotkeeper/integrations/calendar.py
"""
External calendar busy-time supplier.

Connected calendars (Google, Outlook, ...) are outside this service. They
only contribute confirmed busy events, each tied to the resource whose
calendar produced it. The OAuth and sync plumbing lives elsewhere and
plugs in through ``BusyCalendarSource``.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Dict, List, Protocol, Sequence

from ..core.exceptions import ExternalServiceException
from ..core.timezones import ensure_utc
from ..domain.types import BusyInterval

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalendarEvent:
    resource_id: str
    start: datetime
    end: datetime


class BusyCalendarSource(Protocol):
    def fetch_events(
        self, resource_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[CalendarEvent]:
        ...


class NullBusyCalendarSource:
    """Used when no calendar integration is configured."""

    def fetch_events(
        self, resource_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[CalendarEvent]:
        return []


class InMemoryBusyCalendarSource:
    """Calendar events held in memory, keyed by resource."""

    def __init__(self) -> None:
        self._events: Dict[str, List[CalendarEvent]] = defaultdict(list)

    def add_event(self, resource_id: str, start: datetime, end: datetime) -> None:
        self._events[resource_id].append(
            CalendarEvent(resource_id, ensure_utc(start), ensure_utc(end))
        )

    def fetch_events(
        self, resource_ids: Sequence[str], start: datetime, end: datetime
    ) -> List[CalendarEvent]:
        return [
            event
            for resource_id in resource_ids
            for event in self._events.get(resource_id, [])
            if event.start < end and start < event.end
        ]


def collect_calendar_busy(
    source: BusyCalendarSource, resource_ids: Sequence[str], start: datetime, end: datetime
) -> List[BusyInterval]:
    """
    Busy intervals from ``source`` for ``resource_ids`` within ``[start, end)``.

    Raises:
        ExternalServiceException: the calendar provider failed. Not retried here.
    """
    if not resource_ids:
        return []
    try:
        events = source.fetch_events(resource_ids, start, end)
    except ExternalServiceException:
        raise
    except Exception as exc:
        logger.warning("Calendar busy lookup failed for %s: %s", list(resource_ids), exc)
        raise ExternalServiceException(
            "Unable to read connected calendars",
            code="CALENDAR_UNAVAILABLE",
            details={"resource_ids": list(resource_ids)},
        ) from exc
    return [BusyInterval.for_resource(e.start, e.end, e.resource_id) for e in events]
