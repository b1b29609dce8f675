# backend/slotkeeper/core/exceptions.py
"""
Domain-specific exceptions for the booking engine.

Every error a caller can observe is one of these. Services raise them,
routes turn them into HTTP responses through ``to_http_exception``.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Malformed request: duration mismatch, unaligned start, advance bounds."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class ServiceException(DomainException):
    """Raised when a service operation fails."""


class ExternalServiceException(DomainException):
    """A collaborator outside our store (Stripe, a calendar feed) failed.

    Safe to retry by the caller; never retried internally.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# Booking outcomes


class BookingConflictException(ConflictException):
    """The slot was unavailable at commit time."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot is no longer available",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class SlotTakenRefundedException(BookingConflictException):
    """Paid confirmation lost the race; the payment was refunded in full."""

    def __init__(self, payment_intent_id: str, refund_id: Optional[str] = None):
        super().__init__(
            "This time slot is no longer available. Your payment has been refunded.",
            details={
                "payment_intent_id": payment_intent_id,
                "refund_id": refund_id,
                "refunded": True,
            },
        )
        self.code = "BOOKING_CONFLICT_REFUNDED"


# Payment outcomes


class PaymentMismatchException(BusinessRuleException):
    """The confirmed payment does not describe the requested booking."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="PAYMENT_MISMATCH", details=details)


class PaymentNotCompletedException(PaymentMismatchException):
    def __init__(self, payment_intent_id: str, payment_status: str):
        super().__init__(
            "Payment has not been completed",
            details={"payment_intent_id": payment_intent_id, "status": payment_status},
        )
        self.code = "PAYMENT_NOT_COMPLETED"


class PaymentAlreadyConsumedException(ConflictException):
    """The payment reference already produced a booking."""

    def __init__(self, payment_intent_id: str, booking_id: Optional[str] = None):
        super().__init__(
            message="This payment has already been used for a booking",
            code="PAYMENT_ALREADY_CONSUMED",
            details={"payment_intent_id": payment_intent_id, "booking_id": booking_id},
        )


class CompensationFailedException(DomainException):
    """
    A paid confirmation hit a conflict and the refund did not go through.

    Deliberately not a ConflictException: an operator has to reconcile the
    payment by hand.
    """

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, payment_intent_id: str, reason: str):
        super().__init__(
            message=(
                "This time slot is no longer available and we could not issue a refund. "
                "Please contact support."
            ),
            code="COMPENSATION_FAILED",
            details={"payment_intent_id": payment_intent_id, "refund_error": reason},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues or query failures.
    """
