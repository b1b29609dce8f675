"""
Service layer.

Services own business rules and transactions; routes only translate
between HTTP and these calls.
"""

from .availability_service import AvailabilityService
from .booking_service import BookingRequest, BookingService, ParticipantInfo
from .payment_service import PaymentConfirmationRequest, PaymentService
from .payment_webhooks import PaymentWebhookService
from .stripe_gateway import StripeGateway

__all__ = [
    "AvailabilityService",
    "BookingRequest",
    "BookingService",
    "ParticipantInfo",
    "PaymentConfirmationRequest",
    "PaymentService",
    "PaymentWebhookService",
    "StripeGateway",
]
