# backend/slotkeeper/repositories/availability_repository.py
"""
Availability window reads.

Returns windows as domain ``WindowSpec`` values so the scheduling core never
sees ORM instances.
"""

from typing import List

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..domain.types import WindowSpec
from ..models.availability import AvailabilityWindow
from ..models.provider import Resource
from .base_repository import BaseRepository


class AvailabilityRepository(BaseRepository[AvailabilityWindow]):
    def __init__(self, db: Session):
        super().__init__(db, AvailabilityWindow)

    def get_windows_for_offering(self, provider_id: str, offering_id: str) -> List[WindowSpec]:
        """
        Every window that may apply to ``offering_id``: the unscoped windows of
        the provider's active resources plus the ones scoped to this offering.
        Normalization decides which of the two sets wins per resource.
        """
        try:
            stmt = (
                select(AvailabilityWindow)
                .join(Resource, Resource.id == AvailabilityWindow.resource_id)
                .where(
                    Resource.provider_id == provider_id,
                    Resource.is_active.is_(True),
                    or_(
                        AvailabilityWindow.offering_id.is_(None),
                        AvailabilityWindow.offering_id == offering_id,
                    ),
                )
                .order_by(
                    AvailabilityWindow.resource_id,
                    AvailabilityWindow.weekday,
                    AvailabilityWindow.start_local,
                    AvailabilityWindow.id,
                )
            )
            rows = self.db.execute(stmt).scalars().all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading windows for offering {offering_id}: {str(e)}")
            raise RepositoryException(f"Failed to load availability: {str(e)}")

        return [
            WindowSpec(
                resource_id=row.resource_id,
                weekday=row.weekday,
                start_local=row.start_local,
                end_local=row.end_local,
                timezone=row.timezone,
                offering_id=row.offering_id,
            )
            for row in rows
        ]
