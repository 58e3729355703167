# backend/lessonbook/models/availability.py
"""
Availability models for the Lessonbook platform.

Classes:
    AvailabilityRule: Weekly recurring window in a teacher's local timezone
    AvailabilityRange: Declared, merged availability window in UTC
    AvailabilityBlock: Atomic 30-minute bookable row in UTC
"""

from datetime import timedelta
import logging

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
import ulid

from ..core.constants import ATOMIC_BLOCK_MINUTES, DEFAULT_TIMEZONE
from ..core.enums import AvailabilitySource
from ..database import Base
from .types import UTCDateTime, utcnow

logger = logging.getLogger(__name__)


class AvailabilityRule(Base):
    """
    Weekly recurring availability.

    Rules are immutable once expanded; editing availability creates a new
    rule rather than updating one in place.
    """

    __tablename__ = "availability_rules"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    teacher_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    weekday = Column(Integer, nullable=False)  # 0=Sunday .. 6=Saturday
    start_min = Column(Integer, nullable=False)
    end_min = Column(Integer, nullable=False)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    valid_from = Column(UTCDateTime(), nullable=False)
    valid_to = Column(UTCDateTime(), nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_availability_rules_weekday"),
        CheckConstraint(
            "start_min >= 0 AND start_min < end_min AND end_min <= 1440",
            name="ck_availability_rules_minutes",
        ),
        CheckConstraint("valid_from < valid_to", name="ck_availability_rules_validity"),
        Index("idx_availability_rules_teacher", "teacher_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<AvailabilityRule {self.id}: teacher={self.teacher_id} weekday={self.weekday} "
            f"{self.start_min}-{self.end_min} {self.timezone}>"
        )


class AvailabilityRange(Base):
    """Declared availability window kept merged per teacher."""

    __tablename__ = "availability_ranges"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    teacher_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String(10), nullable=False, default="add")
    start_utc = Column(UTCDateTime(), nullable=False)
    end_utc = Column(UTCDateTime(), nullable=False)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("start_utc < end_utc", name="ck_availability_ranges_order"),
        Index("idx_availability_ranges_teacher_start", "teacher_id", "start_utc"),
    )

    def __repr__(self) -> str:
        return f"<AvailabilityRange {self.teacher_id} {self.start_utc}..{self.end_utc}>"


class AvailabilityBlock(Base):
    """
    Atomic bookable unit.

    A block exists only while the time is free; a reservation deletes it
    and a cancellation reinserts it.
    """

    __tablename__ = "availability_blocks"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    teacher_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    start_utc = Column(UTCDateTime(), nullable=False)
    end_utc = Column(UTCDateTime(), nullable=False)
    source = Column(String(10), nullable=False, default=AvailabilitySource.MANUAL.value)
    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("teacher_id", "start_utc", name="uq_availability_blocks_teacher_start"),
        CheckConstraint("start_utc < end_utc", name="ck_availability_blocks_order"),
        CheckConstraint("source IN ('rule', 'manual')", name="ck_availability_blocks_source"),
        Index("idx_availability_blocks_teacher_range", "teacher_id", "start_utc", "end_utc"),
    )

    @property
    def is_atomic(self) -> bool:
        """True when the row spans exactly one grid unit."""
        return (self.end_utc - self.start_utc) == timedelta(minutes=ATOMIC_BLOCK_MINUTES)

    def __repr__(self) -> str:
        return f"<AvailabilityBlock {self.id}: {self.teacher_id} {self.start_utc} ({self.source})>"
