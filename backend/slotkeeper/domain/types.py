# backend/slotkeeper/domain/types.py
"""
Plain value types consumed and produced by the scheduling core.

Nothing here touches the database; repositories translate ORM rows into
these before handing them to the slot generator or the conflict checker.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import re
from typing import FrozenSet, Iterable, List, Optional

from ..core.timezones import MINUTES_PER_DAY, ensure_utc

_HHMM = re.compile(r"^(\d{2}):(\d{2})$")


def parse_hhmm(value: str) -> int:
    """Minutes past midnight for an ``HH:MM`` string; ``24:00`` is end of day."""
    match = _HHMM.match(value or "")
    if not match:
        raise ValueError(f"Invalid time of day: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time of day: {value!r}")
    return hours * 60 + minutes


@dataclass(frozen=True)
class WindowSpec:
    """A recurring weekly open interval for one resource (0=Sunday .. 6=Saturday)."""

    resource_id: str
    weekday: int
    start_local: str
    end_local: str
    timezone: str
    offering_id: Optional[str] = None

    def __post_init__(self) -> None:
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"weekday must be within 0..6, got {self.weekday}")
        parse_hhmm(self.start_local)
        parse_hhmm(self.end_local)

    @property
    def start_minutes(self) -> int:
        return parse_hhmm(self.start_local)

    @property
    def end_minutes(self) -> int:
        return parse_hhmm(self.end_local)

    @property
    def is_overnight(self) -> bool:
        return self.end_minutes <= self.start_minutes


@dataclass(frozen=True)
class BusyInterval:
    """
    An existing commitment.

    An empty ``resource_ids`` means the commitment is not attributed to any
    resource, and it then blocks all of them.
    """

    start: datetime
    end: datetime
    resource_ids: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        object.__setattr__(self, "resource_ids", frozenset(self.resource_ids))

    @classmethod
    def for_resource(
        cls, start: datetime, end: datetime, resource_id: Optional[str]
    ) -> "BusyInterval":
        return cls(start, end, frozenset([resource_id]) if resource_id else frozenset())

    def applies_to(self, resource_id: str) -> bool:
        return not self.resource_ids or resource_id in self.resource_ids

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


def busy_blocks_resource(
    intervals: Iterable[BusyInterval], resource_id: str
) -> List[BusyInterval]:
    """The subset of ``intervals`` that removes time from ``resource_id``."""
    return [interval for interval in intervals if interval.applies_to(resource_id)]


@dataclass(frozen=True)
class SlotOptions:
    range_start: datetime
    range_end: datetime
    slot_duration: int
    slot_buffer: int = 0
    advance_booking_min: int = 0
    advance_booking_max: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "range_start", ensure_utc(self.range_start))
        object.__setattr__(self, "range_end", ensure_utc(self.range_end))
        if self.slot_duration <= 0:
            raise ValueError("slot_duration must be positive")
        if self.slot_buffer < 0:
            raise ValueError("slot_buffer cannot be negative")

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.slot_duration)

    @property
    def step(self) -> timedelta:
        return timedelta(minutes=self.slot_duration + self.slot_buffer)


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    resource_id: str
