# backend/slotkeeper/api/dependencies/database.py
"""
Database-related dependencies.

The session factory is built by the application factory and stored on
``app.state``; requests borrow a session from it.
"""

from typing import Generator

from fastapi import Request
from sqlalchemy.orm import Session

from ...database import session_scope


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Get database session dependency.

    Yields:
        Database session that will be closed after use
    """
    yield from session_scope(request.app.state.session_factory)
