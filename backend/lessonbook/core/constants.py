"""Application-wide constants for the Lessonbook platform."""

from __future__ import annotations

BRAND_NAME = "Lessonbook"

# API metadata
API_TITLE = f"{BRAND_NAME} API"
API_DESCRIPTION = "Teacher availability, lesson offers and lesson bookings"
API_VERSION = "1.0.0"
API_V1_PREFIX = "/api/v1"

# Scheduling grid
ATOMIC_BLOCK_MINUTES = 30  # size of one materialized availability block
SLOT_START_GRID_MINUTES = 15  # start grid for generated candidate slots
MINUTES_PER_DAY = 24 * 60

# Lesson durations
SUPPORTED_DURATIONS = (30, 45, 60)
# 45 would need a 15-minute atomic grid; checkout only handles whole blocks
RESERVABLE_DURATIONS = (30, 60)

DEFAULT_CURRENCY = "EUR"
DEFAULT_TIMEZONE = "Europe/Berlin"

# Rule expansion horizon (~3 months)
DEFAULT_AVAILABILITY_HORIZON_DAYS = 92

# Weekly preview day-part buckets: (key, start hour, end hour) in teacher local time
PREVIEW_BUCKETS = (
    ("6-12", 6, 12),
    ("13-18", 13, 18),
    ("18-00", 18, 24),
    ("00-06", 0, 6),
)

# Query limits
MAX_QUERY_RANGE_DAYS = 93

# Merged calendar event id separator (never appears in ISO-8601)
EVENT_ID_SEPARATOR = "|"
