# backend/slotkeeper/domain/conflict_checker.py
"""
Single-slot availability predicate.

Used for advisory checks from the UI and, authoritatively, inside the
booking transaction against freshly read windows and busy intervals.
A candidate is accepted by a resource when:
- its length equals the offering duration (when one is given),
- it lies inside one of the resource's windows, looking back one local day
  for overnight windows,
- its offset from that window's start is a whole number of
  duration + buffer steps,
- no busy interval that applies to the resource overlaps it.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Optional

from ..core.timezones import ensure_utc, local_date, local_weekday
from .slot_generator import materialize_window
from .types import BusyInterval, WindowSpec, busy_blocks_resource
from .window_index import WindowIndex


def _window_admits(
    window: WindowSpec, start: datetime, end: datetime, step_minutes: Optional[int]
) -> bool:
    start_day = local_date(start, window.timezone)
    candidate_days = [start_day]
    if window.is_overnight:
        candidate_days.append(start_day - timedelta(days=1))

    for day in candidate_days:
        if local_weekday(day, window.timezone) != window.weekday:
            continue
        window_start, window_end = materialize_window(window, day)
        if not (window_start <= start and end <= window_end):
            continue
        if step_minutes is None:
            return True
        offset = start - window_start
        if offset % timedelta(minutes=step_minutes) == timedelta(0):
            return True
    return False


def find_available_resource(
    windows: Iterable[WindowSpec],
    busy: Iterable[BusyInterval],
    start: datetime,
    end: datetime,
    slot_duration: Optional[int] = None,
    slot_buffer: int = 0,
) -> Optional[str]:
    """
    Return the first resource (by id) that can take ``[start, end)``, or None.

    Args:
        windows: Normalized windows for the offering
        busy: Busy intervals; unattributed ones block every resource
        start: Candidate start (aware)
        end: Candidate end (aware)
        slot_duration: Required length in minutes; also enables the alignment check
        slot_buffer: Gap between consecutive slots in minutes
    """
    start = ensure_utc(start)
    end = ensure_utc(end)
    if end <= start:
        return None
    if slot_duration is not None and end - start != timedelta(minutes=slot_duration):
        return None

    step_minutes = slot_duration + slot_buffer if slot_duration is not None else None
    if step_minutes is not None and step_minutes <= 0:
        return None

    busy_list: List[BusyInterval] = list(busy)
    index = WindowIndex.build(windows)
    for resource_id in index.resource_ids:
        if any(
            interval.overlaps(start, end)
            for interval in busy_blocks_resource(busy_list, resource_id)
        ):
            continue
        if any(
            _window_admits(window, start, end, step_minutes)
            for window in index.windows_of(resource_id)
        ):
            return resource_id
    return None


def is_slot_available(
    windows: Iterable[WindowSpec],
    busy: Iterable[BusyInterval],
    start: datetime,
    end: datetime,
    slot_duration: Optional[int] = None,
    slot_buffer: int = 0,
) -> bool:
    return (
        find_available_resource(windows, busy, start, end, slot_duration, slot_buffer)
        is not None
    )
