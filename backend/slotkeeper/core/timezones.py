"""
Timezone helpers shared by the slot engine and the booking services.

Rules:
- All storage and comparisons: UTC
- Availability windows: wall-clock times in the window's own IANA timezone
- Weekday of a local date: read at local noon, never at midnight
"""

from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache

import pytz

MINUTES_PER_DAY = 24 * 60
LOCAL_NOON = time(12, 0)


@lru_cache(maxsize=256)
def get_timezone(tz_name: str) -> pytz.BaseTzInfo:
    """Resolve an IANA id, rejecting unknown names."""
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        raise ValueError(f"Unknown timezone: {tz_name}")


def is_valid_timezone(tz_name: str) -> bool:
    try:
        get_timezone(tz_name)
    except ValueError:
        return False
    return True


def ensure_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("Expected a timezone-aware datetime")
    return value.astimezone(timezone.utc)


def localize(local_date: date, minutes: int, tz_name: str) -> datetime:
    """
    Interpret ``minutes`` past local midnight of ``local_date`` in ``tz_name``.

    Minutes beyond one day roll onto the following dates, so ``24:00`` is the
    next local midnight. Ambiguous wall times take the first occurrence and
    times inside a spring-forward gap are shifted past the gap.

    Returns an aware UTC datetime.
    """
    tz = get_timezone(tz_name)
    day_offset, minute_of_day = divmod(minutes, MINUTES_PER_DAY)
    naive = datetime.combine(  # utc-naive-ok: input for pytz.localize()
        local_date + timedelta(days=day_offset),
        time(minute_of_day // 60, minute_of_day % 60),
    )
    try:
        local_dt = tz.localize(naive, is_dst=None)
    except pytz.exceptions.AmbiguousTimeError:
        local_dt = tz.localize(naive, is_dst=True)
    except pytz.exceptions.NonExistentTimeError:
        local_dt = tz.normalize(tz.localize(naive, is_dst=False))
    return local_dt.astimezone(timezone.utc)


def local_date(instant: datetime, tz_name: str) -> date:
    """Calendar date of ``instant`` as seen in ``tz_name``."""
    return ensure_utc(instant).astimezone(get_timezone(tz_name)).date()


def local_weekday(day: date, tz_name: str) -> int:
    """Weekday of a local calendar date, 0=Sunday .. 6=Saturday."""
    noon = localize(day, LOCAL_NOON.hour * 60, tz_name).astimezone(get_timezone(tz_name))
    return noon.isoweekday() % 7


def iter_local_dates(range_start: datetime, range_end: datetime, tz_name: str):
    """Yield every local date touched by ``[range_start, range_end]`` in ``tz_name``."""
    current = local_date(range_start, tz_name)
    last = local_date(range_end, tz_name)
    while current <= last:
        yield current
        current += timedelta(days=1)


def isoformat_utc(value: datetime) -> str:
    """Millisecond ISO-8601 in UTC with a ``Z`` suffix."""
    return ensure_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
