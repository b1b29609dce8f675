"""
Pure scheduling core: no I/O, no ORM.

The read path is ``normalize_windows_for_offering`` followed by
``calculate_available_slots``; the write path re-runs the normalizer and
``find_available_resource`` inside the booking transaction.
"""

from .availability_normalizer import normalize_windows_for_offering
from .conflict_checker import find_available_resource, is_slot_available
from .slot_generator import (
    calculate_available_slots,
    collapse_duplicate_windows,
    group_slots_by_date,
)
from .types import BusyInterval, Slot, SlotOptions, WindowSpec, busy_blocks_resource, parse_hhmm
from .window_index import WindowIndex

__all__ = [
    "BusyInterval",
    "Slot",
    "SlotOptions",
    "WindowIndex",
    "WindowSpec",
    "busy_blocks_resource",
    "calculate_available_slots",
    "collapse_duplicate_windows",
    "find_available_resource",
    "group_slots_by_date",
    "is_slot_available",
    "normalize_windows_for_offering",
    "parse_hhmm",
]
