# backend/slotkeeper/models/payment.py
"""
Payment record linking a Stripe PaymentIntent to the booking it paid for.

The unique constraint on ``stripe_payment_intent_id`` is what stops a
single payment from being consumed by two bookings.
"""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from ..database.transactions import PAYMENT_INTENT_UNIQUE_CONSTRAINT
from .types import UTCDateTime


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, unique=True)
    stripe_payment_intent_id = Column(String(255), nullable=False)
    amount_cents = Column(Integer, nullable=False)
    platform_fee_cents = Column(Integer, nullable=False, default=0)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    paid_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=lambda: datetime.now(timezone.utc))

    booking = relationship("Booking", back_populates="payment")

    __table_args__ = (
        UniqueConstraint("stripe_payment_intent_id", name=PAYMENT_INTENT_UNIQUE_CONSTRAINT),
        CheckConstraint("amount_cents >= 0", name="ck_payments_amount_non_negative"),
        CheckConstraint(
            "status IN ('PENDING', 'SUCCEEDED', 'FAILED', 'REFUNDED')",
            name="ck_payments_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Payment {self.id}: intent={self.stripe_payment_intent_id} "
            f"booking={self.booking_id} {self.amount_cents} {self.currency} {self.status}>"
        )
