from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from slotkeeper.domain import (
    BusyInterval,
    SlotOptions,
    WindowSpec,
    calculate_available_slots,
    collapse_duplicate_windows,
    find_available_resource,
    group_slots_by_date,
)

NY = "America/New_York"
LA = "America/Los_Angeles"

# Monday 2026-06-01; New York is UTC-4, Los Angeles UTC-7
NOW = datetime(2026, 5, 1, tzinfo=timezone.utc)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def window(
    resource_id: str = "res-a",
    weekday: int = 1,
    start: str = "09:00",
    end: str = "12:00",
    tz: str = NY,
) -> WindowSpec:
    return WindowSpec(
        resource_id=resource_id, weekday=weekday, start_local=start, end_local=end, timezone=tz
    )


def options(start: datetime, end: datetime, duration: int = 60, buffer: int = 0, **kwargs):
    return SlotOptions(
        range_start=start, range_end=end, slot_duration=duration, slot_buffer=buffer, **kwargs
    )


def starts(slots) -> list[datetime]:
    return [slot.start for slot in slots]


def test_weekday_window_is_split_into_duration_slots() -> None:
    slots = calculate_available_slots(
        [window()], [], options(utc(2026, 6, 1), utc(2026, 6, 2)), now=NOW
    )

    assert starts(slots) == [utc(2026, 6, 1, 13), utc(2026, 6, 1, 14), utc(2026, 6, 1, 15)]
    assert all(slot.end - slot.start == timedelta(hours=1) for slot in slots)
    assert slots[-1].end == utc(2026, 6, 1, 16)
    assert {slot.resource_id for slot in slots} == {"res-a"}


def test_buffer_spaces_consecutive_slots() -> None:
    slots = calculate_available_slots(
        [window()], [], options(utc(2026, 6, 1), utc(2026, 6, 2), buffer=15), now=NOW
    )

    # 09:00 and 10:15 local; 11:30 would run past noon
    assert starts(slots) == [utc(2026, 6, 1, 13), utc(2026, 6, 1, 14, 15)]


def test_overnight_window_rolls_into_next_day() -> None:
    slots = calculate_available_slots(
        [window(start="22:00", end="02:00")],
        [],
        options(utc(2026, 6, 1), utc(2026, 6, 3)),
        now=NOW,
    )

    assert starts(slots) == [
        utc(2026, 6, 2, 2),
        utc(2026, 6, 2, 3),
        utc(2026, 6, 2, 4),
        utc(2026, 6, 2, 5),
    ]


def test_friday_overnight_utc_window_crosses_into_saturday() -> None:
    # Friday 2026-06-05 22:00 to Saturday 02:00, UTC, over a two day range
    slots = calculate_available_slots(
        [window(weekday=5, start="22:00", end="02:00", tz="UTC")],
        [],
        options(utc(2026, 6, 5), utc(2026, 6, 7)),
        now=NOW,
    )

    assert starts(slots) == [
        utc(2026, 6, 5, 22),
        utc(2026, 6, 5, 23),
        utc(2026, 6, 6, 0),
        utc(2026, 6, 6, 1),
    ]


def test_windows_in_a_second_timezone_walk_their_own_dates() -> None:
    # Auckland is UTC+12 in June: Tuesday 09:00 there is Monday 21:00 UTC,
    # a date New York never reaches within this range
    windows = [
        window(),
        window(weekday=2, start="09:00", end="10:00", tz="Pacific/Auckland"),
    ]

    slots = calculate_available_slots(
        windows, [], options(utc(2026, 6, 1), utc(2026, 6, 2)), now=NOW
    )

    assert starts(slots) == [
        utc(2026, 6, 1, 13),
        utc(2026, 6, 1, 14),
        utc(2026, 6, 1, 15),
        utc(2026, 6, 1, 21),
    ]
    assert find_available_resource(
        windows, [], utc(2026, 6, 1, 21), utc(2026, 6, 1, 22), slot_duration=60
    ) == "res-a"


def test_overnight_window_from_previous_day_is_included() -> None:
    # Range opens at Tuesday 00:00 New York; the Monday window is still open
    slots = calculate_available_slots(
        [window(start="22:00", end="02:00")],
        [],
        options(utc(2026, 6, 2, 4), utc(2026, 6, 2, 12)),
        now=NOW,
    )

    assert starts(slots) == [utc(2026, 6, 2, 4), utc(2026, 6, 2, 5)]


def test_window_ending_at_midnight() -> None:
    slots = calculate_available_slots(
        [window(start="22:00", end="24:00")],
        [],
        options(utc(2026, 6, 1), utc(2026, 6, 3)),
        now=NOW,
    )

    assert starts(slots) == [utc(2026, 6, 2, 2), utc(2026, 6, 2, 3)]


def test_same_local_window_in_different_timezones() -> None:
    slots = calculate_available_slots(
        [
            window("res-la", start="09:00", end="10:00", tz=LA),
            window("res-ny", start="09:00", end="10:00", tz=NY),
        ],
        [],
        options(utc(2026, 6, 1), utc(2026, 6, 2)),
        now=NOW,
    )

    assert [(slot.resource_id, slot.start) for slot in slots] == [
        ("res-ny", utc(2026, 6, 1, 13)),
        ("res-la", utc(2026, 6, 1, 16)),
    ]


def test_spring_forward_gap_shortens_window() -> None:
    # Sunday 2026-03-08: 02:00-03:00 does not exist in New York
    slots = calculate_available_slots(
        [window(weekday=0, start="01:00", end="04:00")],
        [],
        options(utc(2026, 3, 8), utc(2026, 3, 9)),
        now=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )

    assert starts(slots) == [utc(2026, 3, 8, 6), utc(2026, 3, 8, 7)]


def test_busy_interval_only_blocks_its_resource() -> None:
    windows = [window("res-a", end="10:00"), window("res-b", end="10:00")]
    busy = [BusyInterval.for_resource(utc(2026, 6, 1, 13), utc(2026, 6, 1, 14), "res-a")]

    slots = calculate_available_slots(
        windows, busy, options(utc(2026, 6, 1), utc(2026, 6, 2)), now=NOW
    )

    assert [slot.resource_id for slot in slots] == ["res-b"]


def test_unattributed_busy_interval_blocks_every_resource() -> None:
    windows = [window("res-a", end="10:00"), window("res-b", end="10:00")]
    busy = [BusyInterval(utc(2026, 6, 1, 13, 30), utc(2026, 6, 1, 13, 45))]

    slots = calculate_available_slots(
        windows, busy, options(utc(2026, 6, 1), utc(2026, 6, 2)), now=NOW
    )

    assert slots == []


def test_busy_interval_touching_slot_edge_does_not_block() -> None:
    busy = [BusyInterval.for_resource(utc(2026, 6, 1, 12), utc(2026, 6, 1, 13), "res-a")]

    slots = calculate_available_slots(
        [window(end="10:00")], busy, options(utc(2026, 6, 1), utc(2026, 6, 2)), now=NOW
    )

    assert starts(slots) == [utc(2026, 6, 1, 13)]


def test_slots_are_clipped_to_requested_range() -> None:
    slots = calculate_available_slots(
        [window()], [], options(utc(2026, 6, 1, 14), utc(2026, 6, 1, 15, 30)), now=NOW
    )

    assert starts(slots) == [utc(2026, 6, 1, 14)]


def test_advance_booking_bounds_filter_slots() -> None:
    now = utc(2026, 6, 1, 12, 30)

    slots = calculate_available_slots(
        [window()],
        [],
        options(utc(2026, 6, 1), utc(2026, 6, 2), advance_booking_min=60, advance_booking_max=120),
        now=now,
    )

    # 13:00 is only 30 minutes out; 15:00 is past the two hour horizon
    assert starts(slots) == [utc(2026, 6, 1, 14)]


def test_collapse_keeps_first_resource_per_opening() -> None:
    windows = [window("res-b", end="10:00"), window("res-a", end="10:00")]
    slots = calculate_available_slots(
        windows, [], options(utc(2026, 6, 1), utc(2026, 6, 2)), now=NOW
    )

    assert len(slots) == 2
    collapsed = collapse_duplicate_windows(slots)
    assert len(collapsed) == 1
    assert collapsed[0].resource_id == "res-a"


def test_group_slots_by_local_date() -> None:
    slots = calculate_available_slots(
        [window(start="22:00", end="02:00")],
        [],
        options(utc(2026, 6, 1), utc(2026, 6, 3)),
        now=NOW,
    )

    by_ny_date = group_slots_by_date(slots, NY)
    assert {day: len(items) for day, items in by_ny_date.items()} == {
        "2026-06-01": 2,
        "2026-06-02": 2,
    }
    assert list(group_slots_by_date(slots, "UTC")) == ["2026-06-02"]


def test_slot_options_reject_non_positive_duration() -> None:
    with pytest.raises(ValueError):
        options(utc(2026, 6, 1), utc(2026, 6, 2), duration=0)
