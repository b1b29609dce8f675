from .availability import SlotCheckRequest, SlotCheckResponse, SlotResponse, SlotsResponse
from .booking import BookingCancel, BookingCreate, BookingResponse, ParticipantResponse
from .payment import (
    PaymentConfirm,
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentStatusResponse,
    WebhookAckResponse,
)

__all__ = [
    "BookingCancel",
    "BookingCreate",
    "BookingResponse",
    "ParticipantResponse",
    "PaymentConfirm",
    "PaymentIntentCreate",
    "PaymentIntentResponse",
    "PaymentStatusResponse",
    "SlotCheckRequest",
    "SlotCheckResponse",
    "SlotResponse",
    "SlotsResponse",
    "WebhookAckResponse",
]
