"""
FastAPI dependency providers.

Re-exported here so routes can import from a single place.
"""

from .database import get_db
from .services import (
    get_app_settings,
    get_availability_service,
    get_booking_service,
    get_calendar_source,
    get_payment_service,
    get_payment_webhook_service,
    get_stripe_gateway,
)

__all__ = [
    "get_app_settings",
    "get_availability_service",
    "get_booking_service",
    "get_calendar_source",
    "get_db",
    "get_payment_service",
    "get_payment_webhook_service",
    "get_stripe_gateway",
]
