# backend/lessonbook/models/__init__.py
"""
Database models for the Lessonbook platform.

Importing this package registers every table on ``Base.metadata``.
"""

from .availability import AvailabilityBlock, AvailabilityRange, AvailabilityRule
from .booking import Booking
from .offer import LessonOffer
from .user import User

__all__ = [
    "AvailabilityBlock",
    "AvailabilityRange",
    "AvailabilityRule",
    "Booking",
    "LessonOffer",
    "User",
]
