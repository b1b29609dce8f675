# backend/slotkeeper/services/stripe_gateway.py
"""
Thin wrapper over the Stripe SDK.

Every call passes the API key explicitly instead of mutating the module
level ``stripe.api_key``. Stripe failures surface as
ExternalServiceException and are never retried here.
"""

from dataclasses import dataclass, field
import json
import logging
from typing import Any, Dict, Mapping, Optional

import stripe

from ..core.config import Settings
from ..core.exceptions import ExternalServiceException, ServiceException

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentIntentSnapshot:
    id: str
    status: str
    amount: int
    currency: str
    metadata: Dict[str, str] = field(default_factory=dict)
    client_secret: Optional[str] = None


@dataclass(frozen=True)
class RefundResult:
    id: str
    status: str


def _snapshot(intent: Any) -> PaymentIntentSnapshot:
    metadata: Mapping[str, Any] = getattr(intent, "metadata", None) or {}
    return PaymentIntentSnapshot(
        id=intent.id,
        status=intent.status,
        amount=int(intent.amount),
        currency=str(intent.currency).lower(),
        metadata={str(key): str(value) for key, value in metadata.items()},
        client_secret=getattr(intent, "client_secret", None),
    )


class StripeGateway:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.logger = logging.getLogger(self.__class__.__name__)
        # Bounded network time so a slow Stripe call cannot pin a worker thread
        stripe.default_http_client = stripe.RequestsClient(timeout=settings.stripe_timeout_seconds)
        stripe.max_network_retries = 0

    def _api_key(self) -> str:
        secret = self.settings.stripe_secret_key
        if secret is None or not secret.get_secret_value():
            raise ExternalServiceException(
                "Payments are not configured", code="PAYMENTS_NOT_CONFIGURED"
            )
        return secret.get_secret_value()

    def create_payment_intent(
        self,
        *,
        amount_cents: int,
        currency: str,
        destination_account_id: str,
        application_fee_cents: int,
        metadata: Dict[str, str],
        description: Optional[str] = None,
    ) -> PaymentIntentSnapshot:
        """Destination charge: funds go to the provider, the fee stays with the platform."""
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self._api_key(),
                amount=amount_cents,
                currency=currency,
                application_fee_amount=application_fee_cents,
                transfer_data={"destination": destination_account_id},
                automatic_payment_methods={"enabled": True},
                metadata=metadata,
                description=description,
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error creating payment intent: {str(e)}")
            raise ExternalServiceException(
                "Failed to create payment", code="STRIPE_ERROR", details={"stripe_error": str(e)}
            ) from e
        self.logger.info(f"Created payment intent {intent.id} for {amount_cents} {currency}")
        return _snapshot(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentSnapshot:
        try:
            intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self._api_key())
        except stripe.StripeError as e:
            self.logger.error(f"Stripe error retrieving {payment_intent_id}: {str(e)}")
            raise ExternalServiceException(
                "Failed to verify payment",
                code="STRIPE_ERROR",
                details={"payment_intent_id": payment_intent_id, "stripe_error": str(e)},
            ) from e
        return _snapshot(intent)

    def refund_payment(self, payment_intent_id: str) -> RefundResult:
        """Full refund; the idempotency key makes a repeated compensation harmless."""
        try:
            refund = stripe.Refund.create(
                api_key=self._api_key(),
                payment_intent=payment_intent_id,
                reason="requested_by_customer",
                idempotency_key=f"refund-{payment_intent_id}",
            )
        except stripe.StripeError as e:
            self.logger.error(f"Stripe refund failed for {payment_intent_id}: {str(e)}")
            raise ExternalServiceException(
                "Refund failed",
                code="STRIPE_REFUND_FAILED",
                details={"payment_intent_id": payment_intent_id, "stripe_error": str(e)},
            ) from e
        return RefundResult(id=refund.id, status=refund.status)

    def construct_webhook_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """
        Verify a webhook payload and return it as a plain dict.

        Raises:
            ValueError: payload is not valid JSON
            stripe.SignatureVerificationError: signature does not match
        """
        secret = self.settings.stripe_webhook_secret
        if secret is None or not secret.get_secret_value():
            raise ServiceException(
                "Webhook secret is not configured", code="WEBHOOK_NOT_CONFIGURED"
            )
        stripe.Webhook.construct_event(payload, signature, secret.get_secret_value())
        return dict(json.loads(payload))
