"""
Declarative metadata plus explicit engine and session-factory construction.

There is no module-level engine. The process entry point builds one from
``Settings`` with ``create_engine_from_settings``, wraps it with
``build_session_factory`` and hands the factory to whoever needs sessions.
"""

from __future__ import annotations

from datetime import datetime
import logging
from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker

from ..core.config import Settings

logger = logging.getLogger(__name__)

Base: DeclarativeMeta = declarative_base()

_POSTGRES_CONNECT_ARGS: dict[str, Any] = {
    "keepalives": 1,
    "keepalives_idle": 15,
    "keepalives_interval": 5,
    "keepalives_count": 3,
    # Fail fast on slow queries
    "options": "-c statement_timeout=15000",
    "connect_timeout": 5,
    "application_name": "slotkeeper",
}


def _install_sqlite_hooks(engine: Engine) -> None:
    """
    Make pysqlite issue real BEGIN statements and enforce foreign keys.

    Without this the driver defers BEGIN until the first write, so reads at
    the start of a transaction would not be part of it.
    """

    @event.listens_for(engine, "connect")
    def _sqlite_connect(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.close()
        connection_record.info["connect_time"] = datetime.now()

    @event.listens_for(engine, "begin")
    def _sqlite_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")


def create_engine_from_settings(settings: Settings) -> Engine:
    """Build the engine described by ``settings``."""
    url = settings.database_url
    if settings.is_sqlite:
        engine = create_engine(
            url,
            echo=settings.database_echo,
            future=True,
            connect_args={"check_same_thread": False},
        )
        _install_sqlite_hooks(engine)
    else:
        engine = create_engine(
            url,
            echo=settings.database_echo,
            future=True,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_pre_ping=True,
            pool_recycle=300,
            connect_args=dict(_POSTGRES_CONNECT_ARGS),
        )

        @event.listens_for(engine, "connect")
        def receive_connect(dbapi_connection: Any, connection_record: Any) -> None:
            connection_record.info["connect_time"] = datetime.now()
            logger.debug("Database connection established")

    logger.info("Database engine created for dialect %s", engine.dialect.name)
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Yield a session that is committed on success and always closed."""
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
