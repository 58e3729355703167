# backend/lessonbook/domain/intervals.py
"""
Interval algebra over half-open ``[start_ms, end_ms)`` ranges.

Every function validates its inputs and raises ``InvalidIntervalException``
for non-finite bounds or ``end <= start``. Callers reading rows from storage
filter with ``Interval.is_valid`` before calling in.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import math
from typing import Iterable, List, Sequence, Union

from ..core.exceptions import InvalidIntervalException

Number = Union[int, float]

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_ms(value: datetime) -> int:
    """Milliseconds since the epoch for an aware datetime."""
    if value.tzinfo is None:
        raise ValueError(f"Naive datetime not allowed: {value!r}")
    delta = value - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_ms(value: Number) -> datetime:
    """Aware UTC datetime for milliseconds since the epoch."""
    return _EPOCH + timedelta(milliseconds=value)


@dataclass(frozen=True, order=True)
class Interval:
    start_ms: Number
    end_ms: Number

    @classmethod
    def from_datetimes(cls, start: datetime, end: datetime) -> "Interval":
        return cls(to_ms(start), to_ms(end))

    @property
    def start(self) -> datetime:
        return from_ms(self.start_ms)

    @property
    def end(self) -> datetime:
        return from_ms(self.end_ms)

    @property
    def duration_ms(self) -> Number:
        return self.end_ms - self.start_ms

    def is_valid(self) -> bool:
        return (
            _is_finite(self.start_ms)
            and _is_finite(self.end_ms)
            and self.end_ms > self.start_ms
        )

    def validate(self) -> "Interval":
        if not self.is_valid():
            raise InvalidIntervalException(self.start_ms, self.end_ms)
        return self

    def contains(self, other: "Interval") -> bool:
        return self.start_ms <= other.start_ms and other.end_ms <= self.end_ms


def _is_finite(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _validated(intervals: Iterable[Interval]) -> List[Interval]:
    return [interval.validate() for interval in intervals]


def overlaps(a: Interval, b: Interval) -> bool:
    """Half-open overlap test; touching intervals do not overlap."""
    return max(a.start_ms, b.start_ms) < min(a.end_ms, b.end_ms)


def merge(intervals: Iterable[Interval]) -> List[Interval]:
    """
    Minimal sorted cover of ``intervals``.

    Touching intervals are joined, so the result is pairwise disjoint and
    non-adjacent. ``merge(merge(x)) == merge(x)``.
    """
    ordered = sorted(_validated(intervals), key=lambda iv: (iv.start_ms, iv.end_ms))
    if not ordered:
        return []

    merged: List[Interval] = []
    current_start, current_end = ordered[0].start_ms, ordered[0].end_ms
    for interval in ordered[1:]:
        if interval.start_ms <= current_end:
            current_end = max(current_end, interval.end_ms)
            continue
        merged.append(Interval(current_start, current_end))
        current_start, current_end = interval.start_ms, interval.end_ms
    merged.append(Interval(current_start, current_end))
    return merged


def subtract(base: Iterable[Interval], cut: Iterable[Interval]) -> List[Interval]:
    """
    Portions of ``base`` not covered by ``cut``.

    Both sides are merged first and swept with two pointers, so the output
    is sorted, pairwise disjoint and contained in the union of ``base``.
    """
    base_cover = merge(base)
    cut_cover = merge(cut)
    if not cut_cover:
        return base_cover

    result: List[Interval] = []
    j = 0
    for interval in base_cover:
        cursor = interval.start_ms
        # Cuts wholly before this base interval can never matter again
        while j < len(cut_cover) and cut_cover[j].end_ms <= cursor:
            j += 1
        k = j
        while k < len(cut_cover) and cut_cover[k].start_ms < interval.end_ms:
            piece = cut_cover[k]
            if piece.start_ms > cursor:
                result.append(Interval(cursor, piece.start_ms))
            cursor = max(cursor, piece.end_ms)
            if cursor >= interval.end_ms:
                break
            k += 1
        if cursor < interval.end_ms:
            result.append(Interval(cursor, interval.end_ms))
    return result


def total_length(intervals: Sequence[Interval]) -> Number:
    return sum(iv.duration_ms for iv in merge(intervals))


__all__ = [
    "Interval",
    "from_ms",
    "merge",
    "overlaps",
    "subtract",
    "to_ms",
    "total_length",
]
