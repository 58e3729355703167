# backend/lessonbook/services/availability_query_service.py
"""
Availability Query Service for Lessonbook

Read-side views built from the atomic block store and the stored rules:
- bookable free slots (what a reservation can actually take)
- rule-based candidate slots (display and pricing purposes)
- a weekly day-part preview in the teacher's timezone

Nothing here writes.
"""

from datetime import date, datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import (
    ATOMIC_BLOCK_MINUTES,
    PREVIEW_BUCKETS,
    RESERVABLE_DURATIONS,
)
from ..core.timezone_service import TimezoneService
from ..domain.intervals import Interval, merge, overlaps, subtract
from ..domain.slots import FreeSlot, active_durations, dedupe_and_sort, expand_window
from ..domain.slots import generate_candidate_slots
from ..models.booking import HOLDING_STATUSES
from ..repositories.factory import RepositoryFactory
from .availability_service import validate_utc_range
from .base import BaseService

logger = logging.getLogger(__name__)

PREVIEW_DAYS = 7


class AvailabilityQueryService(BaseService):
    def __init__(self, db: Session, default_timezone: str = TimezoneService.DEFAULT_TIMEZONE):
        super().__init__(db)
        self.default_timezone = default_timezone
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.offer_repository = RepositoryFactory.create_offer_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.user_repository = RepositoryFactory.create_user_repository(db)

    @BaseService.measure_operation("list_free_slots")
    def list_free_slots(self, teacher_id: str, start: datetime, end: datetime) -> List[FreeSlot]:
        """
        Slots a reservation can take right now.

        Stored blocks are merged, time held by pending or paid bookings is
        subtracted, and each remaining window is expanded on the 30-minute
        grid for the teacher's active reservable durations.
        """
        validate_utc_range(start, end)
        durations = active_durations(
            self.offer_repository.list_for_teacher(teacher_id), allowed=RESERVABLE_DURATIONS
        )
        if not durations:
            return []

        blocks = self.availability_repository.list_blocks(teacher_id, start, end)
        free = merge(
            iv
            for iv in (Interval.from_datetimes(b.start_utc, b.end_utc) for b in blocks)
            if iv.is_valid()
        )
        held = [
            Interval.from_datetimes(b.start_utc, b.end_utc)
            for b in self.booking_repository.list_for_teacher_in_range(
                teacher_id, start, end, HOLDING_STATUSES
            )
        ]
        free = subtract(free, [iv for iv in held if iv.is_valid()])

        query = Interval.from_datetimes(start, end)
        slots: List[FreeSlot] = []
        for window in free:
            clipped = Interval(
                max(window.start_ms, query.start_ms), min(window.end_ms, query.end_ms)
            )
            if clipped.is_valid():
                slots.extend(expand_window(clipped, durations, ATOMIC_BLOCK_MINUTES))
        return dedupe_and_sort(slots)

    @BaseService.measure_operation("list_candidate_slots")
    def list_candidate_slots(
        self, teacher_id: str, start: datetime, end: datetime
    ) -> List[FreeSlot]:
        """Rule-based candidates on the 15-minute grid, including 45-minute lessons."""
        validate_utc_range(start, end)
        rules = self.availability_repository.list_rules_overlapping(teacher_id, start, end)
        offers = self.offer_repository.list_for_teacher(teacher_id)
        return generate_candidate_slots(start, end, rules, offers)

    def _teacher_timezone(self, teacher_id: str) -> str:
        return self.user_repository.get_timezone(teacher_id) or self.default_timezone

    @BaseService.measure_operation("weekly_preview")
    def weekly_preview(
        self,
        teacher_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Seven-day grid of day-part buckets in the teacher's timezone.

        Without ``start`` the week begins on the local Monday of ``now``.
        A bucket is marked when any atomic block overlaps it.
        """
        tz_name = self._teacher_timezone(teacher_id)
        if start is not None:
            week_start = TimezoneService.utc_to_local(start, tz_name).date()
        else:
            local_now = TimezoneService.utc_to_local(now or datetime.now(timezone.utc), tz_name)
            week_start = local_now.date() - timedelta(days=local_now.weekday())
        if end is not None:
            week_end = TimezoneService.utc_to_local(end, tz_name).date() + timedelta(days=1)
        else:
            week_end = week_start + timedelta(days=PREVIEW_DAYS)
        if week_end <= week_start:
            week_end = week_start + timedelta(days=PREVIEW_DAYS)

        range_start = TimezoneService.local_minutes_to_utc(week_start, 0, tz_name)
        range_end = TimezoneService.local_minutes_to_utc(week_end, 0, tz_name)
        days = [week_start + timedelta(days=i) for i in range(PREVIEW_DAYS)]

        grid: Dict[str, List[bool]] = {
            key: [False] * PREVIEW_DAYS for key, _, _ in PREVIEW_BUCKETS
        }
        for block in self.availability_repository.list_blocks(teacher_id, range_start, range_end):
            self._mark_block(grid, block.start_utc, block.end_utc, week_start, tz_name)

        return {
            "timezone": tz_name,
            "month_label": _month_label(week_start),
            "day_numbers": [day.day for day in days],
            "grid": grid,
            "range": {
                "from_local": TimezoneService.utc_to_local(range_start, tz_name).isoformat(),
                "to_local_exclusive": TimezoneService.utc_to_local(range_end, tz_name).isoformat(),
            },
        }

    @staticmethod
    def _mark_block(
        grid: Dict[str, List[bool]],
        start_utc: datetime,
        end_utc: datetime,
        week_start: date,
        tz_name: str,
    ) -> None:
        local_start = TimezoneService.utc_to_local(start_utc, tz_name)
        column = (local_start.date() - week_start).days
        if column < 0 or column >= PREVIEW_DAYS:
            return
        day_start = TimezoneService.local_minutes_to_utc(local_start.date(), 0, tz_name)
        # Minutes from local midnight; a block ending at midnight ends at 1440
        block = Interval(
            (start_utc - day_start) // timedelta(minutes=1),
            (end_utc - day_start) // timedelta(minutes=1),
        )
        for key, start_hour, end_hour in PREVIEW_BUCKETS:
            if overlaps(block, Interval(start_hour * 60, end_hour * 60)):
                grid[key][column] = True


def _month_label(value: date) -> str:
    return value.strftime("%B %Y")
