# backend/slotkeeper/repositories/booking_repository.py
"""
Booking data access.

``create_booking`` deliberately lets IntegrityError escape so the
transaction runner can classify overlap violations as conflicts.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..core.exceptions import RepositoryException
from ..domain.types import BusyInterval
from ..models.booking import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingParticipant,
    ParticipantRole,
)
from ..models.offering import Offering
from .base_repository import BaseRepository


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_with_participants(self, booking_id: str) -> Optional[Booking]:
        try:
            stmt = (
                select(Booking)
                .options(selectinload(Booking.participants))
                .where(Booking.id == booking_id)
            )
            return self.db.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def get_busy_intervals(
        self, provider_id: str, range_start: datetime, range_end: datetime
    ) -> List[BusyInterval]:
        """
        Active bookings of the provider overlapping ``[range_start, range_end)``.

        Resources are shared across the provider's offerings, so a booking made
        through any of them counts. Unattributed bookings block every resource.
        """
        try:
            stmt = (
                select(Booking.start_at, Booking.end_at, Booking.resource_id)
                .join(Offering, Offering.id == Booking.offering_id)
                .where(
                    Offering.provider_id == provider_id,
                    Booking.status.in_(ACTIVE_BOOKING_STATUSES),
                    Booking.cancelled_at.is_(None),
                    Booking.start_at < range_end,
                    Booking.end_at > range_start,
                )
                .order_by(Booking.start_at)
            )
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading busy bookings for provider {provider_id}: {str(e)}")
            raise RepositoryException(f"Failed to load bookings: {str(e)}")

        return [
            BusyInterval.for_resource(start_at, end_at, resource_id)
            for start_at, end_at, resource_id in rows
        ]

    def create_booking(
        self,
        *,
        offering_id: str,
        resource_id: Optional[str],
        start_at: datetime,
        end_at: datetime,
        timezone: str,
        participant_name: str,
        participant_email: str,
        notes: Optional[str] = None,
    ) -> Booking:
        booking = Booking(
            offering_id=offering_id,
            resource_id=resource_id,
            start_at=start_at,
            end_at=end_at,
            timezone=timezone,
            notes=notes,
        )
        booking.participants.append(
            BookingParticipant(
                role=ParticipantRole.INVITEE.value,
                name=participant_name,
                email=participant_email,
            )
        )
        return self.add(booking)

    def list_for_offering(
        self,
        offering_id: str,
        *,
        status: Optional[str] = None,
        start_after: Optional[datetime] = None,
        start_before: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[Booking]:
        try:
            stmt = select(Booking).where(Booking.offering_id == offering_id)
            if status:
                stmt = stmt.where(Booking.status == status)
            if start_after:
                stmt = stmt.where(Booking.start_at >= start_after)
            if start_before:
                stmt = stmt.where(Booking.start_at < start_before)
            stmt = stmt.order_by(Booking.start_at).limit(limit)
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing bookings for offering {offering_id}: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")
