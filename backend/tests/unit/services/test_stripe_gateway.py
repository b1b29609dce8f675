from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from slotkeeper.core.config import Settings
from slotkeeper.core.exceptions import ExternalServiceException, ServiceException
from slotkeeper.services.stripe_gateway import StripeGateway


def stripe_intent(**overrides):
    values = {
        "id": "pi_123",
        "status": "requires_payment_method",
        "amount": 5000,
        "currency": "AUD",
        "metadata": {"offeringId": "off-1"},
        "client_secret": "pi_123_secret",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def gateway(settings: Settings) -> StripeGateway:
    return StripeGateway(settings)


def test_create_payment_intent_uses_destination_charge(gateway: StripeGateway) -> None:
    with patch("stripe.PaymentIntent.create", return_value=stripe_intent()) as create:
        snapshot = gateway.create_payment_intent(
            amount_cents=5000,
            currency="aud",
            destination_account_id="acct_provider",
            application_fee_cents=500,
            metadata={"offeringId": "off-1"},
        )

    kwargs = create.call_args.kwargs
    assert kwargs["api_key"] == "sk_test_slotkeeper"
    assert kwargs["transfer_data"] == {"destination": "acct_provider"}
    assert kwargs["application_fee_amount"] == 500
    assert snapshot.id == "pi_123"
    assert snapshot.currency == "aud"
    assert snapshot.client_secret == "pi_123_secret"


def test_stripe_errors_become_external_service_errors(gateway: StripeGateway) -> None:
    with patch("stripe.PaymentIntent.retrieve", side_effect=stripe.StripeError("offline")):
        with pytest.raises(ExternalServiceException) as exc_info:
            gateway.retrieve_payment_intent("pi_123")

    assert exc_info.value.details["payment_intent_id"] == "pi_123"


def test_refund_is_idempotent_per_payment(gateway: StripeGateway) -> None:
    refund = SimpleNamespace(id="re_1", status="succeeded")
    with patch("stripe.Refund.create", return_value=refund) as create:
        result = gateway.refund_payment("pi_123")

    assert result.id == "re_1"
    assert create.call_args.kwargs["idempotency_key"] == "refund-pi_123"
    assert create.call_args.kwargs["payment_intent"] == "pi_123"


@pytest.mark.parametrize("secret_key", [None, ""])
def test_calls_fail_without_secret_key(secret_key) -> None:
    gateway = StripeGateway(Settings(stripe_secret_key=secret_key))

    with pytest.raises(ExternalServiceException) as exc_info:
        gateway.retrieve_payment_intent("pi_123")

    assert exc_info.value.code == "PAYMENTS_NOT_CONFIGURED"


def test_webhook_requires_configured_secret() -> None:
    gateway = StripeGateway(Settings(stripe_secret_key="sk_test_x", stripe_webhook_secret=""))

    with pytest.raises(ServiceException):
        gateway.construct_webhook_event(b"{}", "t=1,v1=abc")


def test_webhook_payload_is_returned_after_verification(gateway: StripeGateway) -> None:
    payload = b'{"type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}}'
    with patch("stripe.Webhook.construct_event") as construct:
        event = gateway.construct_webhook_event(payload, "t=1,v1=abc")

    construct.assert_called_once_with(payload, "t=1,v1=abc", "whsec_slotkeeper")
    assert event["type"] == "payment_intent.succeeded"
    assert event["data"]["object"]["id"] == "pi_1"
