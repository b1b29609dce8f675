# backend/slotkeeper/database/transactions.py
"""
Serializable unit-of-work runner.

Transactional work is a callable that returns a ``TxResult`` instead of
raising to abort. ``run_serializable`` inspects the result to decide
between commit and rollback, and folds storage-level rejections
(exclusion-constraint violations, serialization failures, deadlocks) into
rejected results so callers deal with a single outcome type.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Callable, Generic, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from .session_utils import get_dialect_name

logger = logging.getLogger(__name__)

T = TypeVar("T")

BOOKING_OVERLAP_CONSTRAINT = "bookings_no_overlap_per_resource"
PAYMENT_INTENT_UNIQUE_CONSTRAINT = "uq_payments_stripe_payment_intent_id"

_EXCLUSION_VIOLATION = "23P01"
_SERIALIZATION_FAILURE = "40001"
_DEADLOCK_DETECTED = "40P01"


class TxStatus(str, Enum):
    COMMITTED = "committed"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    PAYMENT_CONSUMED = "payment_consumed"


@dataclass(frozen=True)
class TxResult(Generic[T]):
    status: TxStatus
    value: Optional[T] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is TxStatus.COMMITTED

    @classmethod
    def committed(cls, value: T) -> "TxResult[T]":
        return cls(TxStatus.COMMITTED, value=value)

    @classmethod
    def rejected(cls, status: TxStatus, reason: str) -> "TxResult[T]":
        return cls(status, reason=reason)


def _pgcode(exc: Exception) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _constraint_name(exc: IntegrityError) -> str:
    orig = getattr(exc, "orig", None)
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", "") if diag is not None else ""
    return name or ""


def classify_integrity_error(exc: IntegrityError) -> Optional[TxStatus]:
    """
    Map a constraint violation onto a transaction outcome.

    Returns None for violations that do not correspond to a business outcome.
    """
    constraint = _constraint_name(exc)
    text = str(getattr(exc, "orig", None) or exc)

    if constraint == BOOKING_OVERLAP_CONSTRAINT or BOOKING_OVERLAP_CONSTRAINT in text:
        return TxStatus.CONFLICT
    if _pgcode(exc) == _EXCLUSION_VIOLATION:
        return TxStatus.CONFLICT
    if (
        constraint == PAYMENT_INTENT_UNIQUE_CONSTRAINT
        or PAYMENT_INTENT_UNIQUE_CONSTRAINT in text
        or "payments.stripe_payment_intent_id" in text
    ):
        return TxStatus.PAYMENT_CONSUMED
    return None


def is_serialization_failure(exc: OperationalError) -> bool:
    if _pgcode(exc) in (_SERIALIZATION_FAILURE, _DEADLOCK_DETECTED):
        return True
    message = str(exc).lower()
    return (
        "could not serialize access" in message
        or "deadlock detected" in message
        or "database is locked" in message
    )


def run_serializable(db: Session, work: Callable[[Session], TxResult[T]]) -> TxResult[T]:
    """
    Run ``work`` inside a fresh transaction at SERIALIZABLE isolation.

    Commits only when ``work`` returns a committed result. Any transaction
    already open on ``db`` is committed first so the isolation level applies
    to a new one.
    """
    if db.in_transaction():
        db.commit()

    try:
        # SQLite transactions are serializable already
        if get_dialect_name(db) != "sqlite":
            db.connection(execution_options={"isolation_level": "SERIALIZABLE"})
        result = work(db)
        if not result.ok:
            db.rollback()
            logger.info("Transaction rolled back: %s (%s)", result.status.value, result.reason)
            return result
        db.commit()
        return result
    except IntegrityError as exc:
        db.rollback()
        status = classify_integrity_error(exc)
        if status is None:
            logger.error("Unexpected integrity error: %s", exc)
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        logger.warning("Storage constraint rejected transaction: %s", status.value)
        return TxResult.rejected(status, "constraint violation")
    except OperationalError as exc:
        db.rollback()
        if is_serialization_failure(exc):
            logger.warning("Serialization failure folded into conflict: %s", exc.orig)
            return TxResult.rejected(TxStatus.CONFLICT, "serialization failure")
        logger.error("Database operation failed: %s", exc)
        raise RepositoryException(f"Database operation failed: {exc}") from exc
    except Exception:
        db.rollback()
        raise
