# backend/lessonbook/domain/grid.py
"""
Fixed UTC time grids.

Atomic storage uses a 30-minute grid; generated candidate slots start on a
15-minute grid. Merged calendar events carry a structured identifier built
from the teacher id and the merged range.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

from ..core.constants import ATOMIC_BLOCK_MINUTES, EVENT_ID_SEPARATOR
from ..core.exceptions import ValidationException

ATOMIC_BLOCK = timedelta(minutes=ATOMIC_BLOCK_MINUTES)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _require_aware(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValidationException(
            "Timestamp must include an explicit UTC offset",
            code="NAIVE_TIMESTAMP",
            details={"value": value.isoformat()},
        )
    return value.astimezone(timezone.utc)


def floor_to_grid(value: datetime, minutes: int) -> datetime:
    """Round down to the UTC grid of ``minutes``."""
    value = _require_aware(value)
    step = timedelta(minutes=minutes)
    return _EPOCH + ((value - _EPOCH) // step) * step


def ceil_to_grid(value: datetime, minutes: int) -> datetime:
    """Round up to the UTC grid of ``minutes``."""
    floored = floor_to_grid(value, minutes)
    if floored == _require_aware(value):
        return floored
    return floored + timedelta(minutes=minutes)


def is_on_grid(value: datetime, minutes: int) -> bool:
    return floor_to_grid(value, minutes) == _require_aware(value)


def split_into_atomic_blocks(start: datetime, end: datetime) -> List[Tuple[datetime, datetime]]:
    """
    Decompose ``[start, end)`` into consecutive 30-minute UTC blocks.

    ``start`` is rounded down to the grid; only whole blocks that end at or
    before ``end`` are produced.
    """
    end = _require_aware(end)
    cursor = floor_to_grid(start, ATOMIC_BLOCK_MINUTES)
    blocks: List[Tuple[datetime, datetime]] = []
    while cursor + ATOMIC_BLOCK <= end:
        blocks.append((cursor, cursor + ATOMIC_BLOCK))
        cursor += ATOMIC_BLOCK
    return blocks


def required_block_starts(start: datetime, duration_minutes: int) -> List[datetime]:
    """Atomic block start instants a lesson of ``duration_minutes`` occupies."""
    start = _require_aware(start)
    count = duration_minutes // ATOMIC_BLOCK_MINUTES
    return [start + i * ATOMIC_BLOCK for i in range(count)]


def format_utc(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a ``Z`` suffix."""
    value = _require_aware(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_utc(value: str) -> datetime:
    """Parse an ISO-8601 instant that carries ``Z`` or an explicit offset."""
    text = (value or "").strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise ValidationException(
            f"Invalid timestamp: {value}",
            code="INVALID_TIMESTAMP",
            details={"value": value},
        ) from exc
    return _require_aware(parsed)


@dataclass(frozen=True)
class MergedEventId:
    """Identifier of a merged calendar event: ``teacher|start|end``."""

    teacher_id: str
    start: datetime
    end: datetime

    def encode(self) -> str:
        return EVENT_ID_SEPARATOR.join(
            (self.teacher_id, format_utc(self.start), format_utc(self.end))
        )

    @classmethod
    def parse(cls, raw: str) -> "MergedEventId":
        parts = (raw or "").split(EVENT_ID_SEPARATOR)
        if len(parts) != 3 or not parts[0]:
            raise ValidationException(
                "Malformed event id",
                code="INVALID_EVENT_ID",
                details={"event_id": raw},
            )
        teacher_id, start_raw, end_raw = parts
        try:
            start = parse_utc(start_raw)
            end = parse_utc(end_raw)
        except ValidationException as exc:
            raise ValidationException(
                "Malformed event id",
                code="INVALID_EVENT_ID",
                details={"event_id": raw},
            ) from exc
        if end <= start:
            raise ValidationException(
                "Event id range is empty",
                code="INVALID_EVENT_ID",
                details={"event_id": raw},
            )
        return cls(teacher_id=teacher_id, start=start, end=end)

    def __str__(self) -> str:
        return self.encode()
