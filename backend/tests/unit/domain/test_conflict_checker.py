from __future__ import annotations

from datetime import datetime, timezone

from slotkeeper.domain import BusyInterval, WindowSpec, find_available_resource, is_slot_available

NY = "America/New_York"


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def window(resource_id: str = "res-a", start: str = "09:00", end: str = "17:00") -> WindowSpec:
    # Monday, New York (UTC-4 in June 2026)
    return WindowSpec(
        resource_id=resource_id, weekday=1, start_local=start, end_local=end, timezone=NY
    )


def test_slot_inside_window_is_accepted() -> None:
    assert (
        find_available_resource(
            [window()], [], utc(2026, 6, 1, 15), utc(2026, 6, 1, 16), slot_duration=60
        )
        == "res-a"
    )


def test_wrong_length_is_rejected_even_inside_window() -> None:
    # 11:00-12:30 local against a 60 minute offering
    assert not is_slot_available(
        [window()], [], utc(2026, 6, 1, 15), utc(2026, 6, 1, 16, 30), slot_duration=60
    )


def test_start_must_sit_on_the_slot_grid() -> None:
    windows = [window()]
    # duration 60 + buffer 15 puts slots at 09:00, 10:15, 11:30 local
    assert is_slot_available(
        windows, [], utc(2026, 6, 1, 14, 15), utc(2026, 6, 1, 15, 15), 60, slot_buffer=15
    )
    assert not is_slot_available(
        windows, [], utc(2026, 6, 1, 14), utc(2026, 6, 1, 15), 60, slot_buffer=15
    )


def test_slot_outside_window_is_rejected() -> None:
    assert not is_slot_available(
        [window()], [], utc(2026, 6, 1, 21), utc(2026, 6, 1, 22), slot_duration=60
    )
    # Tuesday has no window
    assert not is_slot_available(
        [window()], [], utc(2026, 6, 2, 13), utc(2026, 6, 2, 14), slot_duration=60
    )


def test_overnight_window_accepts_slot_after_midnight() -> None:
    overnight = window(start="22:00", end="02:00")
    # Tuesday 01:00 New York belongs to Monday's window
    assert (
        find_available_resource(
            [overnight], [], utc(2026, 6, 2, 5), utc(2026, 6, 2, 6), slot_duration=60
        )
        == "res-a"
    )
    assert not is_slot_available(
        [overnight], [], utc(2026, 6, 2, 6), utc(2026, 6, 2, 7), slot_duration=60
    )


def test_first_free_resource_by_id_wins() -> None:
    windows = [window("res-b"), window("res-a")]
    start, end = utc(2026, 6, 1, 15), utc(2026, 6, 1, 16)

    assert find_available_resource(windows, [], start, end, slot_duration=60) == "res-a"

    busy_a = [BusyInterval.for_resource(start, end, "res-a")]
    assert find_available_resource(windows, busy_a, start, end, slot_duration=60) == "res-b"


def test_unattributed_busy_blocks_all_resources() -> None:
    windows = [window("res-a"), window("res-b")]
    busy = [BusyInterval(utc(2026, 6, 1, 15, 30), utc(2026, 6, 1, 15, 45))]

    assert (
        find_available_resource(
            windows, busy, utc(2026, 6, 1, 15), utc(2026, 6, 1, 16), slot_duration=60
        )
        is None
    )


def test_empty_or_inverted_interval_is_rejected() -> None:
    start = utc(2026, 6, 1, 15)
    assert find_available_resource([window()], [], start, start) is None
    assert find_available_resource([window()], [], start, utc(2026, 6, 1, 14)) is None


def test_without_duration_any_contained_interval_is_accepted() -> None:
    assert is_slot_available([window()], [], utc(2026, 6, 1, 13, 7), utc(2026, 6, 1, 13, 52))


def test_no_windows_means_no_resource() -> None:
    assert find_available_resource([], [], utc(2026, 6, 1, 15), utc(2026, 6, 1, 16), 60) is None
