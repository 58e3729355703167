"""Lessonbook backend: teacher availability, lesson offers and bookings."""

__version__ = "0.1.0"
