# backend/lessonbook/models/offer.py
"""
Lesson offer model: a price a teacher charges for one lesson duration.
"""

import logging

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
import ulid

from ..core.constants import DEFAULT_CURRENCY
from ..database import Base
from .types import TimestampMixin

logger = logging.getLogger(__name__)


class LessonOffer(TimestampMixin, Base):
    """At most one offer per (teacher, duration)."""

    __tablename__ = "lesson_offers"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    teacher_id = Column(String(26), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)
    # Nullable on purpose: a missing flag reads as active
    is_active = Column(Integer, nullable=True, default=1)

    __table_args__ = (
        UniqueConstraint("teacher_id", "duration_minutes", name="uq_lesson_offers_teacher_duration"),
        CheckConstraint("duration_minutes IN (30, 45, 60)", name="ck_lesson_offers_duration"),
        CheckConstraint("price_cents >= 0", name="ck_lesson_offers_price"),
    )

    def __repr__(self) -> str:
        return (
            f"<LessonOffer {self.teacher_id} {self.duration_minutes}m "
            f"{self.price_cents} {self.currency} active={self.is_active}>"
        )
