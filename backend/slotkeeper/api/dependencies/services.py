# backend/slotkeeper/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...core.config import Settings
from ...integrations.calendar import BusyCalendarSource
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.payment_service import PaymentService
from ...services.payment_webhooks import PaymentWebhookService
from ...services.stripe_gateway import StripeGateway
from .database import get_db

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_calendar_source(request: Request) -> BusyCalendarSource:
    return request.app.state.calendar_source


def get_stripe_gateway(request: Request) -> StripeGateway:
    return request.app.state.stripe_gateway


def get_availability_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    calendar_source: BusyCalendarSource = Depends(get_calendar_source),
) -> AvailabilityService:
    """Get AvailabilityService instance with proper dependencies."""
    return AvailabilityService(db, settings, calendar_source)


def get_booking_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        settings: Application settings
        availability_service: Read path sharing the same session

    Returns:
        BookingService instance
    """
    return BookingService(db, settings, availability_service=availability_service)


def get_payment_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    booking_service: BookingService = Depends(get_booking_service),
) -> PaymentService:
    return PaymentService(db, settings, gateway=gateway, booking_service=booking_service)


def get_payment_webhook_service(db: Session = Depends(get_db)) -> PaymentWebhookService:
    return PaymentWebhookService(db)
