# backend/slotkeeper/domain/window_index.py
"""Read-only index of availability windows keyed by (resource, weekday)."""

from __future__ import annotations

from collections import defaultdict
from types import MappingProxyType
from typing import Iterable, Mapping, Tuple

from .types import WindowSpec


class WindowIndex:
    """
    Built once per request from normalized windows and never mutated.

    Each resource also records the distinct timezones its windows use, in
    first-seen order. Local calendar dates are walked once per timezone.
    """

    __slots__ = ("_by_key", "_by_resource", "_timezones")

    def __init__(
        self,
        by_key: Mapping[Tuple[str, int], Tuple[WindowSpec, ...]],
        by_resource: Mapping[str, Tuple[WindowSpec, ...]],
        timezones: Mapping[str, Tuple[str, ...]],
    ) -> None:
        self._by_key = MappingProxyType(dict(by_key))
        self._by_resource = MappingProxyType(dict(by_resource))
        self._timezones = MappingProxyType(dict(timezones))

    @classmethod
    def build(cls, windows: Iterable[WindowSpec]) -> "WindowIndex":
        by_key: dict[Tuple[str, int], list[WindowSpec]] = defaultdict(list)
        by_resource: dict[str, list[WindowSpec]] = defaultdict(list)
        timezones: dict[str, list[str]] = defaultdict(list)
        for window in windows:
            by_key[(window.resource_id, window.weekday)].append(window)
            by_resource[window.resource_id].append(window)
            if window.timezone not in timezones[window.resource_id]:
                timezones[window.resource_id].append(window.timezone)
        return cls(
            {key: tuple(items) for key, items in by_key.items()},
            {key: tuple(items) for key, items in by_resource.items()},
            {key: tuple(items) for key, items in timezones.items()},
        )

    @property
    def resource_ids(self) -> Tuple[str, ...]:
        return tuple(sorted(self._by_resource))

    def __len__(self) -> int:
        return sum(len(items) for items in self._by_resource.values())

    def timezones_for(self, resource_id: str) -> Tuple[str, ...]:
        return self._timezones.get(resource_id, ())

    def windows_for(self, resource_id: str, weekday: int) -> Tuple[WindowSpec, ...]:
        return self._by_key.get((resource_id, weekday), ())

    def windows_of(self, resource_id: str) -> Tuple[WindowSpec, ...]:
        return self._by_resource.get(resource_id, ())
