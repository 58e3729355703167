"""
Centralized timezone handling for Lessonbook.

Rules:
- Availability rules: teacher's local wall clock in the rule's timezone
- All storage: UTC
- All comparisons: UTC
- API responses: UTC with timezone context
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

from .constants import DEFAULT_TIMEZONE, MINUTES_PER_DAY
from .exceptions import ValidationException


class TimezoneService:
    """Handles all timezone conversions consistently."""

    DEFAULT_TIMEZONE = DEFAULT_TIMEZONE

    @staticmethod
    def get_timezone(tz_str: Optional[str]) -> pytz.BaseTzInfo:
        """Get timezone object, with fallback to default."""
        try:
            return pytz.timezone(tz_str or TimezoneService.DEFAULT_TIMEZONE)
        except pytz.UnknownTimeZoneError:
            return pytz.timezone(TimezoneService.DEFAULT_TIMEZONE)

    @staticmethod
    def require_timezone(tz_str: str) -> str:
        """Validate an IANA name supplied by a caller."""
        try:
            pytz.timezone(tz_str)
        except pytz.UnknownTimeZoneError as exc:
            raise ValidationException(
                f"Unknown timezone: {tz_str}",
                code="INVALID_TIMEZONE",
                details={"timezone": tz_str},
            ) from exc
        return tz_str

    @staticmethod
    def localize(naive_dt: datetime, timezone_str: str) -> datetime:
        """
        Attach ``timezone_str`` to a wall-clock time.

        Ambiguous times (fall back) resolve to the first occurrence;
        non-existent times (spring forward) shift forward by the gap.
        """
        tz = TimezoneService.get_timezone(timezone_str)
        try:
            # is_dst=None raises exception for ambiguous/nonexistent times
            return tz.localize(naive_dt, is_dst=None)
        except pytz.exceptions.AmbiguousTimeError:
            return tz.localize(naive_dt, is_dst=True)
        except pytz.exceptions.NonExistentTimeError:
            return tz.normalize(tz.localize(naive_dt, is_dst=False))

    @staticmethod
    def local_minutes_to_utc(local_date: date, minute_of_day: int, timezone_str: str) -> datetime:
        """Convert minutes after local midnight on ``local_date`` to UTC."""
        if minute_of_day >= MINUTES_PER_DAY:
            local_date = local_date + timedelta(days=minute_of_day // MINUTES_PER_DAY)
            minute_of_day = minute_of_day % MINUTES_PER_DAY
        naive_dt = datetime.combine(
            local_date, time(minute_of_day // 60, minute_of_day % 60)
        )  # Intentionally naive for pytz.localize()
        return TimezoneService.localize(naive_dt, timezone_str).astimezone(timezone.utc)

    @staticmethod
    def utc_to_local(utc_dt: datetime, timezone_str: str) -> datetime:
        """Convert UTC datetime to local timezone."""
        if utc_dt.tzinfo is None:
            utc_dt = utc_dt.replace(tzinfo=timezone.utc)

        tz = TimezoneService.get_timezone(timezone_str)
        return utc_dt.astimezone(tz)
