# backend/slotkeeper/repositories/offering_repository.py
"""Offering and provider lookups."""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.offering import Offering
from ..models.provider import Provider
from .base_repository import BaseRepository


class OfferingRepository(BaseRepository[Offering]):
    def __init__(self, db: Session):
        super().__init__(db, Offering)

    def get_active_with_provider(self, offering_id: str) -> Optional[Offering]:
        try:
            stmt = (
                select(Offering)
                .options(joinedload(Offering.provider))
                .where(Offering.id == offering_id, Offering.is_active.is_(True))
            )
            return self.db.execute(stmt).scalars().first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading offering {offering_id}: {str(e)}")
            raise RepositoryException(f"Failed to load offering: {str(e)}")


class ProviderRepository(BaseRepository[Provider]):
    def __init__(self, db: Session):
        super().__init__(db, Provider)

    def get_by_stripe_account(self, stripe_account_id: str) -> Optional[Provider]:
        return self.find_one_by(stripe_account_id=stripe_account_id)
