# backend/slotkeeper/repositories/base_repository.py
"""
Base Repository Pattern

Shared data-access plumbing for the concrete repositories:
- Lookup by simple criteria
- Flush-not-commit writes (the service layer owns transactions)
- SQLAlchemy errors logged and re-raised as RepositoryException

Constraint violations raised while flushing booking or payment rows are NOT
wrapped: the serializable transaction runner needs the raw IntegrityError to
tell an overlap or a reused payment apart from a genuine failure.
"""

import logging
from typing import Generic, Optional, Type, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    def find_one_by(self, **kwargs) -> Optional[T]:
        try:
            return self.db.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding one by criteria: {str(e)}")
            raise RepositoryException(f"Failed to find record: {str(e)}")

    def add(self, entity: T) -> T:
        """Stage ``entity`` and flush so its id is assigned. Does NOT commit."""
        self.db.add(entity)
        self.db.flush()
        return entity

    def flush(self) -> None:
        """Flush pending ORM changes."""
        self.db.flush()
