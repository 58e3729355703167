# backend/lessonbook/services/availability_service.py
"""
Availability Service for Lessonbook

Owns the teacher-side write path of the atomic block store:

- Rule creation expands a weekly rule over the configured horizon.
- Manual ranges are decomposed into 30-minute blocks.
- Deletion by block id, merged event id or explicit range.
- Atomic and merged reads of the teacher calendar.

Declared ranges are kept merged per teacher (merge-on-write): a new range
absorbs every stored range it overlaps or touches.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.constants import ATOMIC_BLOCK_MINUTES, MAX_QUERY_RANGE_DAYS
from ..core.enums import AvailabilityDisplayMode, AvailabilitySource, DeletionMode
from ..core.exceptions import ValidationException
from ..core.timezone_service import TimezoneService
from ..domain.grid import (
    MergedEventId,
    ceil_to_grid,
    format_utc,
    split_into_atomic_blocks,
)
from ..domain.intervals import Interval, merge, subtract
from ..domain.slots import rule_windows
from ..models.availability import AvailabilityBlock, AvailabilityRange, AvailabilityRule
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleExpansionResult:
    rule: AvailabilityRule
    ranges_written: int
    blocks_inserted: int


@dataclass(frozen=True)
class ManualRangeResult:
    range: AvailabilityRange
    blocks_requested: int
    blocks_inserted: int


@dataclass(frozen=True)
class MergedCalendarEvent:
    id: str
    start: datetime
    end: datetime
    title: str = "Available"
    display: str = "block"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "start": format_utc(self.start),
            "end": format_utc(self.end),
            "title": self.title,
            "display": self.display,
        }


def validate_utc_range(
    start: Optional[datetime],
    end: Optional[datetime],
    *,
    max_days: Optional[int] = MAX_QUERY_RANGE_DAYS,
) -> None:
    """Reject missing, naive, inverted or overly long ranges."""
    if start is None or end is None:
        raise ValidationException("Missing from/to", code="INVALID_RANGE")
    for value in (start, end):
        if value.tzinfo is None or value.utcoffset() is None:
            raise ValidationException(
                "Timestamps must include an explicit UTC offset",
                code="NAIVE_TIMESTAMP",
                details={"value": value.isoformat()},
            )
    if end <= start:
        raise ValidationException(
            "Invalid range",
            code="INVALID_RANGE",
            details={"from": start.isoformat(), "to": end.isoformat()},
        )
    if max_days is not None and end - start > timedelta(days=max_days):
        raise ValidationException(
            f"Range may span at most {max_days} days",
            code="RANGE_TOO_LARGE",
            details={"max_days": max_days},
        )


class AvailabilityService(BaseService):
    """Rule expansion, manual ranges, deletion and calendar reads."""

    def __init__(self, db: Session, horizon_days: int):
        super().__init__(db)
        self.horizon_days = horizon_days
        self.repository = RepositoryFactory.create_availability_repository(db)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)

    # Writes

    @BaseService.measure_operation("create_rule")
    def create_rule(
        self,
        teacher_id: str,
        weekday: int,
        start_min: int,
        end_min: int,
        timezone_name: str,
        now: Optional[datetime] = None,
    ) -> RuleExpansionResult:
        """
        Persist a weekly rule and expand it into ranges and atomic blocks.

        The rule is valid from ``now`` for ``horizon_days``. Every local day
        of the rule's timezone in that window whose weekday matches yields
        one UTC window, clipped to the validity range.
        """
        if not 0 <= weekday <= 6:
            raise ValidationException("weekday must be between 0 and 6", code="INVALID_WEEKDAY")
        if not (0 <= start_min < end_min <= 1440):
            raise ValidationException(
                "endMin must be > startMin and both within 0..1440",
                code="INVALID_RULE_WINDOW",
                details={"start_min": start_min, "end_min": end_min},
            )
        TimezoneService.require_timezone(timezone_name)

        valid_from = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
        valid_to = valid_from + timedelta(days=self.horizon_days)

        with self.transaction():
            rule = self.repository.create_rule(
                teacher_id=teacher_id,
                weekday=weekday,
                start_min=start_min,
                end_min=end_min,
                timezone=timezone_name,
                valid_from=valid_from,
                valid_to=valid_to,
            )
            ranges_written = 0
            blocks_inserted = 0
            for window in rule_windows(rule, valid_from, valid_to):
                self._upsert_range(teacher_id, window.start, window.end)
                ranges_written += 1
                # Rule blocks never start before the window they came from
                blocks = split_into_atomic_blocks(
                    ceil_to_grid(window.start, ATOMIC_BLOCK_MINUTES), window.end
                )
                blocks_inserted += self.repository.insert_missing_blocks(
                    teacher_id,
                    self.booking_repository.drop_held_blocks(teacher_id, blocks),
                    AvailabilitySource.RULE.value,
                )

        self.log_operation(
            "create_rule",
            teacher_id=teacher_id,
            rule_id=rule.id,
            ranges_written=ranges_written,
            blocks_inserted=blocks_inserted,
        )
        return RuleExpansionResult(rule, ranges_written, blocks_inserted)

    @BaseService.measure_operation("add_manual_range")
    def add_manual_range(self, teacher_id: str, start: datetime, end: datetime) -> ManualRangeResult:
        """
        Add ``[start, end)`` as manual availability.

        The start is rounded down to the 30-minute grid and only whole
        blocks ending at or before ``end`` are stored.
        """
        validate_utc_range(start, end, max_days=None)
        blocks = split_into_atomic_blocks(start, end)
        if not blocks:
            raise ValidationException("Empty selection", code="EMPTY_SELECTION")

        with self.transaction():
            stored_range = self._upsert_range(teacher_id, blocks[0][0], blocks[-1][1])
            inserted = self.repository.insert_missing_blocks(
                teacher_id,
                self.booking_repository.drop_held_blocks(teacher_id, blocks),
                AvailabilitySource.MANUAL.value,
            )

        self.log_operation(
            "add_manual_range",
            teacher_id=teacher_id,
            blocks_requested=len(blocks),
            blocks_inserted=inserted,
        )
        return ManualRangeResult(stored_range, len(blocks), inserted)

    @BaseService.measure_operation("delete_availability")
    def delete_availability(
        self,
        teacher_id: str,
        *,
        block_id: Optional[str] = None,
        event_id: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Delete availability in one of three modes, checked in order:
        block id, merged event id, explicit UTC range.

        Event id and range modes delete every block intersecting the window
        and carve the window out of the declared ranges.
        """
        if block_id:
            with self.transaction():
                deleted = self.repository.delete_blocks_by_ids(teacher_id, [block_id])
            mode = DeletionMode.ATOMIC
        elif event_id:
            parsed = MergedEventId.parse(event_id)
            if parsed.teacher_id != teacher_id:
                raise ValidationException(
                    "eventId teacherId mismatch",
                    code="EVENT_TEACHER_MISMATCH",
                    details={"event_id": event_id},
                )
            deleted = self._delete_window(teacher_id, parsed.start, parsed.end)
            mode = DeletionMode.EVENT_ID
        elif start is not None or end is not None:
            validate_utc_range(start, end, max_days=None)
            assert start is not None and end is not None
            deleted = self._delete_window(teacher_id, start, end)
            mode = DeletionMode.RANGE
        else:
            raise ValidationException(
                "Provide id, event_id or from/to", code="MISSING_DELETE_TARGET"
            )

        self.log_operation(
            "delete_availability", teacher_id=teacher_id, mode=mode.value, deleted=deleted
        )
        return {"deleted": deleted, "mode": mode.value}

    def _delete_window(self, teacher_id: str, start: datetime, end: datetime) -> int:
        with self.transaction():
            deleted = self.repository.delete_blocks_intersecting(teacher_id, start, end)
            self._carve_ranges(teacher_id, start, end)
        return deleted

    def _upsert_range(self, teacher_id: str, start: datetime, end: datetime) -> AvailabilityRange:
        """Replace every stored range touching ``[start, end)`` by one covering range."""
        touching = self.repository.find_ranges_touching(teacher_id, start, end)
        merged_start, merged_end = start, end
        for row in touching:
            merged_start = min(merged_start, row.start_utc)
            merged_end = max(merged_end, row.end_utc)
        self.repository.delete_ranges(teacher_id, [row.id for row in touching])
        return self.repository.create_range(teacher_id, merged_start, merged_end)

    def _carve_ranges(self, teacher_id: str, start: datetime, end: datetime) -> None:
        affected = self.repository.list_ranges(teacher_id, start, end)
        if not affected:
            return
        base = [
            iv
            for iv in (Interval.from_datetimes(r.start_utc, r.end_utc) for r in affected)
            if iv.is_valid()
        ]
        remaining = subtract(base, [Interval.from_datetimes(start, end)])
        self.repository.delete_ranges(teacher_id, [row.id for row in affected])
        for piece in remaining:
            self.repository.create_range(teacher_id, piece.start, piece.end)

    # Reads

    @BaseService.measure_operation("get_availability")
    def get_availability(
        self,
        teacher_id: str,
        start: datetime,
        end: datetime,
        mode: AvailabilityDisplayMode = AvailabilityDisplayMode.MERGED,
    ) -> Dict[str, Any]:
        """Atomic rows intersecting the range, or their merged calendar events."""
        validate_utc_range(start, end)
        rows = self.repository.list_blocks(teacher_id, start, end)
        if mode == AvailabilityDisplayMode.ATOMIC:
            return {"teacher_id": teacher_id, "mode": mode.value, "count": len(rows), "blocks": rows}
        events = self.merged_events(teacher_id, rows)
        return {"teacher_id": teacher_id, "mode": mode.value, "count": len(events), "events": events}

    @staticmethod
    def merged_events(teacher_id: str, rows: List[AvailabilityBlock]) -> List[MergedCalendarEvent]:
        intervals = [
            iv
            for iv in (Interval.from_datetimes(r.start_utc, r.end_utc) for r in rows)
            if iv.is_valid()
        ]
        return [
            MergedCalendarEvent(
                id=MergedEventId(teacher_id, iv.start, iv.end).encode(),
                start=iv.start,
                end=iv.end,
            )
            for iv in merge(intervals)
        ]

    def list_rules(self, teacher_id: str) -> List[AvailabilityRule]:
        return self.repository.list_rules(teacher_id)

    def list_ranges(
        self,
        teacher_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> List[AvailabilityRange]:
        return self.repository.list_ranges(teacher_id, start, end)
