# backend/slotkeeper/repositories/__init__.py
"""
Repository layer: data access separated from business logic.

Usage:
    from slotkeeper.repositories import RepositoryFactory

    repository = RepositoryFactory.create_booking_repository(db)
    busy = repository.get_busy_intervals(provider_id, start, end)
"""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .offering_repository import OfferingRepository, ProviderRepository
from .payment_repository import PaymentRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingRepository",
    "OfferingRepository",
    "PaymentRepository",
    "ProviderRepository",
    "RepositoryFactory",
]
