# backend/slotkeeper/models/provider.py
"""
Provider and Resource models.

A provider sells offerings and owns a Stripe connected account. Resources
are the bookable parties (staff members, rooms) whose time is scheduled.
"""

from enum import Enum

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..database import Base
from .types import UTCDateTime


class StripeAccountStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    RESTRICTED = "RESTRICTED"


class Provider(Base):
    __tablename__ = "providers"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(200), nullable=False)
    stripe_account_id = Column(String(255), nullable=True, unique=True)
    stripe_account_status = Column(
        String(20), nullable=False, default=StripeAccountStatus.PENDING.value
    )
    created_at = Column(UTCDateTime, server_default=func.now())

    resources = relationship("Resource", back_populates="provider", cascade="all, delete-orphan")
    offerings = relationship("Offering", back_populates="provider", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint(
            "stripe_account_status IN ('PENDING', 'ACTIVE', 'RESTRICTED')",
            name="ck_providers_stripe_account_status",
        ),
    )

    @property
    def accepts_payments(self) -> bool:
        return bool(self.stripe_account_id) and (
            self.stripe_account_status == StripeAccountStatus.ACTIVE.value
        )

    def __repr__(self) -> str:
        return f"<Provider {self.id}: {self.name} stripe={self.stripe_account_status}>"


class Resource(Base):
    __tablename__ = "resources"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    provider_id = Column(String(26), ForeignKey("providers.id"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    provider = relationship("Provider", back_populates="resources")
    availability_windows = relationship(
        "AvailabilityWindow", back_populates="resource", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Resource {self.id}: {self.name}>"
