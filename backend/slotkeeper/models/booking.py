# backend/slotkeeper/models/booking.py
"""
Booking and BookingParticipant models.

Bookings store UTC instants plus the timezone the booker saw. A booking is
attributed to the resource whose availability admitted it; ``resource_id``
is NULL only for legacy rows, which block every resource.

The storage layer forbids two active bookings for the same resource from
overlapping. On PostgreSQL that is an exclusion constraint over a generated
``tstzrange`` column; on SQLite, insert/update triggers enforce the same rule
and abort with the constraint name so both surface as IntegrityError.
"""

from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Optional

from sqlalchemy import DDL, CheckConstraint, Column, ForeignKey, Index, String, Text, event
from sqlalchemy.orm import relationship
import ulid

from ..database import Base
from ..database.transactions import BOOKING_OVERLAP_CONSTRAINT
from .types import UTCDateTime

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Statuses that occupy a resource's time
ACTIVE_BOOKING_STATUSES = (BookingStatus.CONFIRMED.value, BookingStatus.COMPLETED.value)


class ParticipantRole(str, Enum):
    HOST = "HOST"
    CO_HOST = "CO_HOST"
    INVITEE = "INVITEE"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    offering_id = Column(String(26), ForeignKey("offerings.id"), nullable=False, index=True)
    resource_id = Column(String(26), ForeignKey("resources.id"), nullable=True)

    start_at = Column(UTCDateTime, nullable=False)
    end_at = Column(UTCDateTime, nullable=False)
    timezone = Column(String(64), nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.CONFIRMED.value, index=True)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=_utcnow)
    cancelled_at = Column(UTCDateTime, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    offering = relationship("Offering")
    resource = relationship("Resource")
    participants = relationship(
        "BookingParticipant", back_populates="booking", cascade="all, delete-orphan"
    )
    payment = relationship("Payment", back_populates="booking", uselist=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('CONFIRMED', 'COMPLETED', 'CANCELLED', 'NO_SHOW')",
            name="ck_bookings_status",
        ),
        CheckConstraint("end_at > start_at", name="ck_bookings_time_order"),
        Index("ix_bookings_resource_start", "resource_id", "start_at"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.CONFIRMED.value

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: offering={self.offering_id}, resource={self.resource_id}, "
            f"{self.start_at}-{self.end_at}, status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return self.cancelled_at is None and self.status in ACTIVE_BOOKING_STATUSES

    def cancel(self, reason: Optional[str] = None) -> None:
        """Cancel this booking. The row is kept; it just stops blocking time."""
        self.status = BookingStatus.CANCELLED.value
        self.cancelled_at = _utcnow()
        self.cancellation_reason = reason
        logger.info(f"Booking {self.id} cancelled")


class BookingParticipant(Base):
    __tablename__ = "booking_participants"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False, index=True)
    resource_id = Column(String(26), ForeignKey("resources.id"), nullable=True)
    role = Column(String(20), nullable=False, default=ParticipantRole.INVITEE.value)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)

    booking = relationship("Booking", back_populates="participants")

    __table_args__ = (
        CheckConstraint(
            "role IN ('HOST', 'CO_HOST', 'INVITEE')", name="ck_booking_participants_role"
        ),
    )


_ACTIVE_SQL = "('" + "', '".join(ACTIVE_BOOKING_STATUSES) + "')"

POSTGRES_OVERLAP_DDL = (
    "CREATE EXTENSION IF NOT EXISTS btree_gist",
    "ALTER TABLE bookings ADD COLUMN booking_span tstzrange "
    "GENERATED ALWAYS AS (tstzrange(start_at, end_at, '[)')) STORED",
    f"ALTER TABLE bookings ADD CONSTRAINT {BOOKING_OVERLAP_CONSTRAINT} "
    "EXCLUDE USING gist (resource_id WITH =, booking_span WITH &&) "
    f"WHERE (cancelled_at IS NULL AND status IN {_ACTIVE_SQL})",
)


def _sqlite_overlap_trigger(operation: str) -> str:
    # NEW.id is excluded so an UPDATE does not collide with its own row
    return f"""
CREATE TRIGGER IF NOT EXISTS {BOOKING_OVERLAP_CONSTRAINT}_{operation.lower()}
BEFORE {operation} ON bookings
WHEN NEW.resource_id IS NOT NULL
 AND NEW.cancelled_at IS NULL
 AND NEW.status IN {_ACTIVE_SQL}
BEGIN
    SELECT RAISE(ABORT, '{BOOKING_OVERLAP_CONSTRAINT}')
    WHERE EXISTS (
        SELECT 1 FROM bookings b
        WHERE b.resource_id = NEW.resource_id
          AND b.id <> NEW.id
          AND b.cancelled_at IS NULL
          AND b.status IN {_ACTIVE_SQL}
          AND b.start_at < NEW.end_at
          AND NEW.start_at < b.end_at
    );
END
"""


SQLITE_OVERLAP_DDL = (_sqlite_overlap_trigger("INSERT"), _sqlite_overlap_trigger("UPDATE"))

for _statement in POSTGRES_OVERLAP_DDL:
    event.listen(
        Booking.__table__, "after_create", DDL(_statement).execute_if(dialect="postgresql")
    )
for _statement in SQLITE_OVERLAP_DDL:
    event.listen(Booking.__table__, "after_create", DDL(_statement).execute_if(dialect="sqlite"))
