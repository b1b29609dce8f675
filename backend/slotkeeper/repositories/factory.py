# backend/slotkeeper/repositories/factory.py
"""
Repository Factory

Single place where services obtain repositories, so tests can swap one
implementation without touching service constructors.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .booking_repository import BookingRepository
    from .offering_repository import OfferingRepository, ProviderRepository
    from .payment_repository import PaymentRepository


class RepositoryFactory:
    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for availability window reads."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_offering_repository(db: Session) -> "OfferingRepository":
        from .offering_repository import OfferingRepository

        return OfferingRepository(db)

    @staticmethod
    def create_provider_repository(db: Session) -> "ProviderRepository":
        from .offering_repository import ProviderRepository

        return ProviderRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        """Create repository for payment records."""
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)
