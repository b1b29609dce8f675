"""
Database models for the booking engine.

- Providers and their bookable resources
- Offerings (duration, buffer, advance bounds, price)
- Weekly availability windows
- Bookings with participants
- Payments linking Stripe intents to bookings
"""

from .availability import AvailabilityWindow
from .booking import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingParticipant,
    BookingStatus,
    ParticipantRole,
)
from .offering import Offering
from .payment import Payment, PaymentStatus
from .provider import Provider, Resource, StripeAccountStatus

__all__ = [
    "ACTIVE_BOOKING_STATUSES",
    "AvailabilityWindow",
    "Booking",
    "BookingParticipant",
    "BookingStatus",
    "Offering",
    "ParticipantRole",
    "Payment",
    "PaymentStatus",
    "Provider",
    "Resource",
    "StripeAccountStatus",
]
