# backend/lessonbook/domain/slots.py
"""
Candidate slot generation from weekly availability rules.

``generate_candidate_slots`` is pure: it reads rule and offer attributes and
never touches storage. The atomic block store, not this generator, decides
what is actually bookable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set, Tuple

from ..core.constants import MINUTES_PER_DAY, SLOT_START_GRID_MINUTES, SUPPORTED_DURATIONS
from ..core.enums import Weekday
from ..core.timezone_service import TimezoneService
from .grid import ceil_to_grid, format_utc
from .intervals import Interval

_INACTIVE_STRINGS = frozenset({"0", "false", "no", "off"})


class RuleLike(Protocol):
    weekday: Any
    start_min: Any
    end_min: Any
    timezone: Optional[str]
    valid_from: datetime
    valid_to: datetime


class OfferLike(Protocol):
    duration_minutes: Any
    is_active: Any


@dataclass(frozen=True)
class FreeSlot:
    start_utc: datetime
    end_utc: datetime
    duration_minutes: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_utc": format_utc(self.start_utc),
            "end_utc": format_utc(self.end_utc),
            "duration_minutes": self.duration_minutes,
        }


def is_offer_active(value: Any) -> bool:
    """
    Tolerant reading of an offer's active flag.

    ``None`` and ``True`` are active, ``False`` is not. Numbers are active
    unless zero. Strings are inactive only for "0", "false", "no" and "off"
    (trimmed, case-insensitive). Anything else falls back to truthiness.
    """
    if value is None or value is True:
        return True
    if value is False:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() not in _INACTIVE_STRINGS
    return bool(value)


def _coerce_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def active_durations(
    offers: Iterable[OfferLike], allowed: Sequence[int] = SUPPORTED_DURATIONS
) -> List[int]:
    """Sorted distinct durations of active offers, limited to ``allowed``."""
    durations: Set[int] = set()
    for offer in offers:
        if not is_offer_active(getattr(offer, "is_active", None)):
            continue
        duration = _coerce_int(getattr(offer, "duration_minutes", None))
        if duration in allowed:
            durations.add(duration)
    return sorted(durations)


def _clamp_minutes(value: Any) -> Optional[int]:
    minutes = _coerce_int(value)
    if minutes is None:
        return None
    return max(0, min(MINUTES_PER_DAY, minutes))


def _local_dates_touching(day_start: datetime, day_end: datetime, tz_name: str) -> List[date]:
    first = TimezoneService.utc_to_local(day_start, tz_name).date()
    last = TimezoneService.utc_to_local(day_end - timedelta(microseconds=1), tz_name).date()
    dates = [first]
    cursor = first
    while cursor < last:
        cursor += timedelta(days=1)
        dates.append(cursor)
    return dates


def rule_window_on(rule: RuleLike, local_date: date) -> Optional[Interval]:
    """
    The rule's UTC window on ``local_date`` clipped to its validity.

    Returns ``None`` when the weekday does not match, the minutes are
    inverted, or the window falls outside the validity range.
    """
    weekday = _coerce_int(rule.weekday)
    if weekday is None or Weekday.from_python_weekday(local_date.weekday()) != weekday:
        return None
    start_min = _clamp_minutes(rule.start_min)
    end_min = _clamp_minutes(rule.end_min)
    if start_min is None or end_min is None or end_min <= start_min:
        return None

    tz_name = rule.timezone or "UTC"
    start = TimezoneService.local_minutes_to_utc(local_date, start_min, tz_name)
    end = TimezoneService.local_minutes_to_utc(local_date, end_min, tz_name)
    start = max(start, rule.valid_from)
    end = min(end, rule.valid_to)
    if end <= start:
        return None
    return Interval.from_datetimes(start, end)


def rule_windows(rule: RuleLike, range_from: datetime, range_to: datetime) -> List[Interval]:
    """
    UTC windows a rule produces inside ``[range_from, range_to)``.

    Walks each UTC calendar day overlapping the range and evaluates the rule
    on every local date of its timezone that day touches.
    """
    if range_to <= range_from:
        return []
    tz_name = rule.timezone or "UTC"
    range_iv = Interval.from_datetimes(range_from, range_to)
    seen: Set[Interval] = set()
    windows: List[Interval] = []

    day = datetime.combine(
        range_from.astimezone(timezone.utc).date(), datetime.min.time(), timezone.utc
    )
    while day < range_to:
        next_day = day + timedelta(days=1)
        if next_day <= rule.valid_from or day >= rule.valid_to:
            day = next_day
            continue
        for local_date in _local_dates_touching(day, next_day, tz_name):
            window = rule_window_on(rule, local_date)
            if window is None:
                continue
            clipped = Interval(
                max(window.start_ms, range_iv.start_ms), min(window.end_ms, range_iv.end_ms)
            )
            if clipped.end_ms <= clipped.start_ms or clipped in seen:
                continue
            seen.add(clipped)
            windows.append(clipped)
        day = next_day
    windows.sort()
    return windows


def expand_window(
    window: Interval,
    durations: Sequence[int],
    grid_minutes: int = SLOT_START_GRID_MINUTES,
) -> List[FreeSlot]:
    """Every ``(t, t + d)`` inside ``window`` with ``t`` on the start grid."""
    slots: List[FreeSlot] = []
    step = timedelta(minutes=grid_minutes)
    cursor = ceil_to_grid(window.start, grid_minutes)
    end = window.end
    while cursor < end:
        for duration in durations:
            slot_end = cursor + timedelta(minutes=duration)
            if slot_end <= end:
                slots.append(
                    FreeSlot(start_utc=cursor, end_utc=slot_end, duration_minutes=duration)
                )
        cursor += step
    return slots


def dedupe_and_sort(slots: Iterable[FreeSlot]) -> List[FreeSlot]:
    """Drop identical triples; order by start, then duration."""
    unique: Dict[Tuple[datetime, datetime, int], FreeSlot] = {}
    for slot in slots:
        unique.setdefault((slot.start_utc, slot.end_utc, slot.duration_minutes), slot)
    return sorted(unique.values(), key=lambda s: (s.start_utc, s.duration_minutes))


def generate_candidate_slots(
    range_from: datetime,
    range_to: datetime,
    rules: Sequence[RuleLike],
    offers: Sequence[OfferLike],
) -> List[FreeSlot]:
    """
    Candidate free slots for the query range ``[range_from, range_to)``.

    Slots start on a 15-minute UTC grid, fit entirely inside one rule
    window, and are emitted once per active offer duration.
    """
    if range_to <= range_from or not rules:
        return []
    durations = active_durations(offers)
    if not durations:
        return []

    slots: List[FreeSlot] = []
    for rule in rules:
        for window in rule_windows(rule, range_from, range_to):
            slots.extend(expand_window(window, durations))
    return dedupe_and_sort(slots)
