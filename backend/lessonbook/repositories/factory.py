# backend/lessonbook/repositories/factory.py
"""
Repository Factory for Lessonbook

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_repository import AvailabilityRepository
    from .booking_repository import BookingRepository
    from .offer_repository import OfferRepository
    from .user_repository import UserRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_availability_repository(db: Session) -> "AvailabilityRepository":
        """Create repository for rules, ranges and atomic blocks."""
        from .availability_repository import AvailabilityRepository

        return AvailabilityRepository(db)

    @staticmethod
    def create_offer_repository(db: Session) -> "OfferRepository":
        from .offer_repository import OfferRepository

        return OfferRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_user_repository(db: Session) -> "UserRepository":
        from .user_repository import UserRepository

        return UserRepository(db)
