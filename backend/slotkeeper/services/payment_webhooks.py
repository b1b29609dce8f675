# backend/slotkeeper/services/payment_webhooks.py
"""
Stripe webhook processing.

Webhooks only move statuses on rows that already exist: payment records
and provider Connect accounts. They never create or cancel bookings.
Events for unknown payments and unhandled event types are acknowledged so
Stripe does not retry them forever.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from ..models.payment import PaymentStatus
from ..models.provider import StripeAccountStatus
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)

_PAYMENT_INTENT_STATUSES = {
    "payment_intent.succeeded": PaymentStatus.SUCCEEDED,
    "payment_intent.payment_failed": PaymentStatus.FAILED,
}


def account_status_from_stripe(account: Dict[str, Any]) -> StripeAccountStatus:
    if account.get("charges_enabled") and account.get("payouts_enabled"):
        return StripeAccountStatus.ACTIVE
    requirements = account.get("requirements") or {}
    if requirements.get("past_due"):
        return StripeAccountStatus.RESTRICTED
    return StripeAccountStatus.PENDING


class PaymentWebhookService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)
        self.provider_repository = RepositoryFactory.create_provider_repository(db)

    @BaseService.measure_operation("handle_webhook_event")
    def handle_webhook_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a verified event.

        Returns:
            Dictionary with the event type and whether anything changed
        """
        event_type = event.get("type", "")
        data = (event.get("data") or {}).get("object") or {}
        self.logger.info(f"Processing webhook event: {event_type}")

        if event_type in _PAYMENT_INTENT_STATUSES:
            handled = self._update_payment(data.get("id"), _PAYMENT_INTENT_STATUSES[event_type])
        elif event_type == "charge.refunded":
            handled = self._update_payment(data.get("payment_intent"), PaymentStatus.REFUNDED)
        elif event_type == "account.updated":
            handled = self._update_account(data)
        else:
            self.logger.info(f"Unhandled webhook event type: {event_type}")
            return {"received": True, "event_type": event_type, "handled": False}

        return {"received": True, "event_type": event_type, "handled": handled}

    def _update_payment(self, payment_intent_id: Any, status: PaymentStatus) -> bool:
        if not payment_intent_id:
            self.logger.warning(f"Webhook for {status.value} carries no payment intent id")
            return False
        paid_at = datetime.now(timezone.utc) if status is PaymentStatus.SUCCEEDED else None
        with self.transaction():
            payment = self.payment_repository.update_status(payment_intent_id, status, paid_at)
        if payment is None:
            self.logger.warning(f"Payment record not found for webhook event {payment_intent_id}")
            return False
        self.logger.info(f"Updated payment {payment_intent_id} status to {status.value}")
        return True

    def _update_account(self, account: Dict[str, Any]) -> bool:
        account_id = account.get("id")
        provider = None
        if account_id:
            provider = self.provider_repository.get_by_stripe_account(account_id)
        if provider is None:
            self.logger.warning(f"No provider linked to Stripe account {account_id}")
            return False

        new_status = account_status_from_stripe(account).value
        if provider.stripe_account_status == new_status:
            return False
        with self.transaction():
            provider.stripe_account_status = new_status
        self.logger.info(f"Stripe account {account_id} is now {new_status}")
        return True
