# backend/lessonbook/repositories/__init__.py
"""Repository layer for the Lessonbook platform."""

from .availability_repository import AvailabilityRepository
from .base_repository import BaseRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .offer_repository import OfferRepository
from .user_repository import UserRepository

__all__ = [
    "AvailabilityRepository",
    "BaseRepository",
    "BookingRepository",
    "OfferRepository",
    "RepositoryFactory",
    "UserRepository",
]
