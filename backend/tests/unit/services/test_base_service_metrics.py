from __future__ import annotations

import pytest

from slotkeeper.monitoring.prometheus_metrics import REGISTRY
from slotkeeper.services.base import BaseService


class LedgerService(BaseService):
    @BaseService.measure_operation("post_entry")
    def post_entry(self, fail: bool = False) -> str:
        if fail:
            raise LookupError("no such ledger")
        return "posted"


def operations(status: str) -> float:
    value = REGISTRY.get_sample_value(
        "slotkeeper_service_operations_total",
        {"service": "LedgerService", "operation": "post_entry", "status": status},
    )
    return value or 0.0


def test_measured_calls_are_counted_in_prometheus() -> None:
    service = LedgerService(db=None)
    successes, failures = operations("success"), operations("error")

    assert service.post_entry() == "posted"
    with pytest.raises(LookupError):
        service.post_entry(fail=True)

    assert operations("success") == successes + 1
    assert operations("error") == failures + 1
    assert (
        REGISTRY.get_sample_value(
            "slotkeeper_errors_total",
            {"service": "LedgerService", "operation": "post_entry", "error_type": "LookupError"},
        )
        >= 1
    )


def test_service_keeps_no_in_process_metrics() -> None:
    assert not hasattr(BaseService, "get_metrics")
    assert not hasattr(BaseService, "_class_metrics")
