# backend/slotkeeper/models/offering.py
"""
Offering model: the bookable product and its scheduling parameters.
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime


class Offering(Base):
    __tablename__ = "offerings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)

    slot_duration_minutes = Column(Integer, nullable=False)
    slot_buffer_minutes = Column(Integer, nullable=False, default=0)
    advance_booking_min_minutes = Column(Integer, nullable=False, default=0)
    # NULL means no upper bound
    advance_booking_max_minutes = Column(Integer, nullable=True)

    price_cents = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(UTCDateTime, server_default=func.now())

    provider = relationship("Provider", back_populates="offerings")

    __table_args__ = (
        CheckConstraint("slot_duration_minutes > 0", name="ck_offerings_duration_positive"),
        CheckConstraint("slot_buffer_minutes >= 0", name="ck_offerings_buffer_non_negative"),
        CheckConstraint("advance_booking_min_minutes >= 0", name="ck_offerings_min_advance"),
        CheckConstraint("price_cents >= 0", name="ck_offerings_price_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Offering {self.id}: {self.name} {self.slot_duration_minutes}m"
            f"+{self.slot_buffer_minutes}m>"
        )
