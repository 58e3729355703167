# backend/lessonbook/core/enums.py
"""
Core enums for the Lessonbook platform.

Values are stored as plain strings in the database so that the
enum members compare equal to raw column values.
"""

from enum import Enum, IntEnum


class RoleName(str, Enum):
    """Roles a user can hold."""

    TEACHER = "teacher"
    STUDENT = "student"


class Weekday(IntEnum):
    """
    Locale-independent weekday numbering used by availability rules.

    Sunday is 0 and Saturday is 6, independent of the ISO numbering that
    ``datetime.weekday()`` uses (Monday=0).
    """

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_python_weekday(cls, value: int) -> "Weekday":
        """Convert ``date.weekday()`` (Mon=0..Sun=6) to Sun=0..Sat=6."""
        return cls((value + 1) % 7)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Blocks consumed, waiting for payment
    PAID = "paid"
    CANCELED = "canceled"
    REFUNDED = "refunded"


class AvailabilitySource(str, Enum):
    """How an atomic availability row came into existence."""

    RULE = "rule"
    MANUAL = "manual"


class AvailabilityDisplayMode(str, Enum):
    """Read mode for the teacher availability calendar."""

    ATOMIC = "atomic"
    MERGED = "merged"


class DeletionMode(str, Enum):
    """Addressing mode used to delete availability."""

    ATOMIC = "atomic"
    EVENT_ID = "eventId"
    RANGE = "range"
