# backend/slotkeeper/repositories/payment_repository.py
"""Payment record access."""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models.payment import Payment, PaymentStatus
from .base_repository import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[Payment]:
        return self.find_one_by(stripe_payment_intent_id=payment_intent_id)

    def get_by_booking(self, booking_id: str) -> Optional[Payment]:
        return self.find_one_by(booking_id=booking_id)

    def create_payment_record(
        self,
        *,
        booking_id: str,
        payment_intent_id: str,
        amount_cents: int,
        platform_fee_cents: int,
        currency: str,
        status: PaymentStatus,
        paid_at: Optional[datetime] = None,
    ) -> Payment:
        """Insert a payment row. A reused intent id raises IntegrityError on flush."""
        return self.add(
            Payment(
                booking_id=booking_id,
                stripe_payment_intent_id=payment_intent_id,
                amount_cents=amount_cents,
                platform_fee_cents=platform_fee_cents,
                currency=currency,
                status=status.value,
                paid_at=paid_at,
            )
        )

    def update_status(
        self, payment_intent_id: str, status: PaymentStatus, paid_at: Optional[datetime] = None
    ) -> Optional[Payment]:
        payment = self.get_by_payment_intent(payment_intent_id)
        if payment is None:
            return None
        payment.status = status.value
        if paid_at is not None and payment.paid_at is None:
            payment.paid_at = paid_at
        self.flush()
        return payment
