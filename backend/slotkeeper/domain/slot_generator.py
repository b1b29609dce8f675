# backend/slotkeeper/domain/slot_generator.py
"""
Expand weekly windows into concrete bookable slots.

Algorithm, per resource:
1. Walk the local calendar dates covering the requested UTC range, once
   for each timezone the resource's windows use (plus the day before, so
   an overnight window that began yesterday still contributes its
   after-midnight slots).
2. Read each date's weekday at local noon.
3. Materialise each matching window on that date in the window's own
   timezone; overnight windows end on the next local date.
4. Step through the window by duration + buffer.
5. Keep slots inside the requested range, inside the advance-booking
   bounds, and clear of every busy interval that applies to the resource.

The output is advisory. Nothing here reserves anything.
"""

from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..core.timezones import (
    MINUTES_PER_DAY,
    ensure_utc,
    iter_local_dates,
    local_date,
    local_weekday,
    localize,
)
from .types import BusyInterval, Slot, SlotOptions, WindowSpec, busy_blocks_resource
from .window_index import WindowIndex


def materialize_window(window: WindowSpec, day: date) -> Tuple[datetime, datetime]:
    """UTC start and end of ``window`` when it opens on local date ``day``."""
    end_minutes = window.end_minutes
    if window.is_overnight:
        end_minutes += MINUTES_PER_DAY
    return (
        localize(day, window.start_minutes, window.timezone),
        localize(day, end_minutes, window.timezone),
    )


def _walk(
    window_start: datetime, window_end: datetime, duration: timedelta, step: timedelta
) -> Iterator[Tuple[datetime, datetime]]:
    cursor = window_start
    while cursor + duration <= window_end:
        yield cursor, cursor + duration
        cursor += step


def _resource_slots(
    index: WindowIndex,
    resource_id: str,
    busy: Sequence[BusyInterval],
    options: SlotOptions,
    earliest: datetime,
    latest: Optional[datetime],
) -> Iterator[Slot]:
    for tz_name in index.timezones_for(resource_id):
        lookback = local_date(options.range_start, tz_name) - timedelta(days=1)
        days = [lookback, *iter_local_dates(options.range_start, options.range_end, tz_name)]

        for day in days:
            weekday = local_weekday(day, tz_name)
            for window in index.windows_for(resource_id, weekday):
                # Each window is materialised only on its own timezone's dates
                if window.timezone != tz_name:
                    continue
                if day == lookback and not window.is_overnight:
                    continue
                window_start, window_end = materialize_window(window, day)
                for start, end in _walk(window_start, window_end, options.duration, options.step):
                    if start < options.range_start or end > options.range_end:
                        continue
                    if start < earliest or (latest is not None and start > latest):
                        continue
                    if any(interval.overlaps(start, end) for interval in busy):
                        continue
                    yield Slot(start=start, end=end, resource_id=resource_id)


def calculate_available_slots(
    windows: Iterable[WindowSpec],
    busy: Iterable[BusyInterval],
    options: SlotOptions,
    now: Optional[datetime] = None,
) -> List[Slot]:
    """Every open slot across all resources, sorted by UTC start."""
    index = WindowIndex.build(windows)
    busy_list = list(busy)
    now = ensure_utc(now) if now is not None else datetime.now(timezone.utc)
    earliest = now + timedelta(minutes=options.advance_booking_min)
    latest = (
        now + timedelta(minutes=options.advance_booking_max)
        if options.advance_booking_max is not None
        else None
    )

    slots: List[Slot] = []
    for resource_id in index.resource_ids:
        blocking = busy_blocks_resource(busy_list, resource_id)
        slots.extend(_resource_slots(index, resource_id, blocking, options, earliest, latest))

    slots.sort(key=lambda slot: slot.start)
    return slots


def collapse_duplicate_windows(slots: Iterable[Slot]) -> List[Slot]:
    """Keep one slot per distinct (start, end); first resource wins."""
    seen: Dict[Tuple[datetime, datetime], Slot] = OrderedDict()
    for slot in slots:
        seen.setdefault((slot.start, slot.end), slot)
    return list(seen.values())


def group_slots_by_date(slots: Iterable[Slot], tz_name: str) -> Dict[str, List[Slot]]:
    """Group slots under the ISO local date (in ``tz_name``) of their start."""
    grouped: Dict[str, List[Slot]] = OrderedDict()
    for slot in slots:
        grouped.setdefault(local_date(slot.start, tz_name).isoformat(), []).append(slot)
    return grouped
