# backend/slotkeeper/domain/availability_normalizer.py
"""
Resolve the effective weekly windows of each resource for one offering.

Per resource, windows scoped to the offering replace the unscoped defaults
outright; the two sets are never merged. Windows scoped to some other
offering are ignored.
"""

from typing import Dict, Iterable, List, Optional

from .types import WindowSpec


def normalize_windows_for_offering(
    windows: Iterable[WindowSpec], offering_id: Optional[str]
) -> List[WindowSpec]:
    defaults: Dict[str, List[WindowSpec]] = {}
    overrides: Dict[str, List[WindowSpec]] = {}
    resource_order: List[str] = []

    for window in windows:
        if window.resource_id not in defaults:
            defaults[window.resource_id] = []
            overrides[window.resource_id] = []
            resource_order.append(window.resource_id)
        if window.offering_id is None:
            defaults[window.resource_id].append(window)
        elif offering_id is not None and window.offering_id == offering_id:
            overrides[window.resource_id].append(window)

    effective: List[WindowSpec] = []
    for resource_id in resource_order:
        effective.extend(overrides[resource_id] or defaults[resource_id])
    return effective
