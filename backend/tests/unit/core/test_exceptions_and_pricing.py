from __future__ import annotations

from pydantic import ValidationError
import pytest

from slotkeeper.core.config import Settings, get_settings
from slotkeeper.core.exceptions import (
    BookingConflictException,
    BusinessRuleException,
    CompensationFailedException,
    ConflictException,
    ExternalServiceException,
    NotFoundException,
    PaymentAlreadyConsumedException,
    PaymentMismatchException,
    PaymentNotCompletedException,
    SlotTakenRefundedException,
    ValidationException,
)
from slotkeeper.services.pricing_service import calculate_platform_fee


@pytest.mark.parametrize(
    "exc, status_code, code",
    [
        (ValidationException("bad", code="DURATION_MISMATCH"), 400, "DURATION_MISMATCH"),
        (NotFoundException("missing"), 404, "NotFoundException"),
        (BookingConflictException(), 409, "BOOKING_CONFLICT"),
        (PaymentAlreadyConsumedException("pi_1", "bk_1"), 409, "PAYMENT_ALREADY_CONSUMED"),
        (PaymentMismatchException("nope"), 422, "PAYMENT_MISMATCH"),
        (PaymentNotCompletedException("pi_1", "processing"), 422, "PAYMENT_NOT_COMPLETED"),
        (ExternalServiceException("stripe down"), 503, "ExternalServiceException"),
        (CompensationFailedException("pi_1", "card_declined"), 502, "COMPENSATION_FAILED"),
    ],
)
def test_domain_exceptions_map_to_http(exc, status_code: int, code: str) -> None:
    http_exc = exc.to_http_exception()

    assert http_exc.status_code == status_code
    assert http_exc.detail["code"] == code
    assert http_exc.detail["message"] == exc.message


def test_refunded_conflict_is_still_a_conflict() -> None:
    exc = SlotTakenRefundedException("pi_1", "re_1")

    assert isinstance(exc, ConflictException)
    assert exc.code == "BOOKING_CONFLICT_REFUNDED"
    assert exc.details == {"payment_intent_id": "pi_1", "refund_id": "re_1", "refunded": True}


def test_compensation_failure_is_not_a_conflict() -> None:
    exc = CompensationFailedException("pi_1", "card_declined")

    assert not isinstance(exc, ConflictException)
    assert exc.details["payment_intent_id"] == "pi_1"


def test_payment_mismatch_is_a_business_rule_violation() -> None:
    assert isinstance(PaymentNotCompletedException("pi_1", "canceled"), BusinessRuleException)


@pytest.mark.parametrize(
    "amount, percentage, fee",
    [(5000, 0.10, 500), (1005, 0.10, 101), (1004, 0.10, 100), (0, 0.15, 0), (999, 0.0, 0)],
)
def test_platform_fee_rounds_half_up(amount: int, percentage: float, fee: int) -> None:
    assert calculate_platform_fee(amount, percentage) == fee


def test_platform_fee_rejects_negative_amounts() -> None:
    with pytest.raises(ValueError):
        calculate_platform_fee(-1, 0.1)


def test_settings_normalize_and_validate(tmp_path) -> None:
    settings = Settings(database_url=f"sqlite:///{tmp_path}/x.db", payment_currency=" USD ")

    assert settings.payment_currency == "usd"
    assert settings.is_sqlite
    assert not Settings(stripe_secret_key="").stripe_configured

    with pytest.raises(ValidationError):
        Settings(platform_fee_percentage=1.5)
    with pytest.raises(ValidationError):
        Settings(log_level="chatty")


def test_get_settings_reads_environment_once(monkeypatch) -> None:
    get_settings.cache_clear()
    monkeypatch.setenv("MAX_SLOT_RANGE_DAYS", "14")
    try:
        first = get_settings()
        monkeypatch.setenv("MAX_SLOT_RANGE_DAYS", "30")

        assert first.max_slot_range_days == 14
        assert get_settings() is first
    finally:
        get_settings.cache_clear()
