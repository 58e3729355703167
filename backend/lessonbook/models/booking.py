# backend/lessonbook/models/booking.py
"""
Booking model for the Lessonbook platform.

A booking is created pending when its atomic blocks are consumed and moves
through a small state machine driven by payment events and the student.
Bookings are never deleted; they stay as the audit record.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String
import ulid

from ..core.constants import DEFAULT_CURRENCY
from ..core.enums import BookingStatus
from ..core.exceptions import BusinessRuleException
from ..database import Base
from .types import TimestampMixin, UTCDateTime

logger = logging.getLogger(__name__)

BOOKING_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.PAID, BookingStatus.CANCELED}),
    BookingStatus.PAID: frozenset({BookingStatus.REFUNDED}),
    BookingStatus.CANCELED: frozenset(),
    BookingStatus.REFUNDED: frozenset(),
}

# Statuses whose time is still held and must not be offered again
HOLDING_STATUSES: FrozenSet[BookingStatus] = frozenset({BookingStatus.PENDING, BookingStatus.PAID})


class Booking(TimestampMixin, Base):
    """Reservation of a teacher's time by a student."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    teacher_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    student_id = Column(String(26), ForeignKey("users.id"), nullable=False)

    start_utc = Column(UTCDateTime(), nullable=False)
    end_utc = Column(UTCDateTime(), nullable=False)
    duration_minutes = Column(Integer, nullable=False)

    # Offer snapshot
    price_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default=DEFAULT_CURRENCY)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)

    stripe_checkout_session_id = Column(String(255), nullable=True, index=True)
    payment_reference = Column(String(255), nullable=True, index=True)

    paid_at = Column(UTCDateTime(), nullable=True)
    cancelled_at = Column(UTCDateTime(), nullable=True)
    refunded_at = Column(UTCDateTime(), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'paid', 'canceled', 'refunded')",
            name="ck_bookings_status",
        ),
        CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        CheckConstraint("price_cents >= 0", name="check_price_non_negative"),
        CheckConstraint("start_utc < end_utc", name="check_time_order"),
        Index("idx_bookings_teacher_start", "teacher_id", "start_utc"),
        Index("idx_bookings_student", "student_id"),
    )

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if not self.status:
            self.status = BookingStatus.PENDING.value

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id}: student={self.student_id}, teacher={self.teacher_id}, "
            f"start={self.start_utc}, duration={self.duration_minutes}, status={self.status}>"
        )

    @property
    def status_enum(self) -> BookingStatus:
        return BookingStatus(self.status)

    def transition_to(self, target: BookingStatus, *, at: Optional[datetime] = None) -> None:
        """Move to ``target`` or raise if the state machine forbids it."""
        current = self.status_enum
        if target not in BOOKING_TRANSITIONS[current]:
            raise BusinessRuleException(
                f"Illegal booking transition {current.value} -> {target.value}",
                code="ILLEGAL_BOOKING_TRANSITION",
                details={"booking_id": self.id, "from": current.value, "to": target.value},
            )
        when = at or datetime.now(timezone.utc)
        self.status = target.value
        if target == BookingStatus.PAID:
            self.paid_at = when
        elif target == BookingStatus.CANCELED:
            self.cancelled_at = when
        elif target == BookingStatus.REFUNDED:
            self.refunded_at = when
        logger.info(f"Booking {self.id} moved {current.value} -> {target.value}")

    def mark_paid(self, payment_reference: Optional[str] = None) -> None:
        self.transition_to(BookingStatus.PAID)
        if payment_reference:
            self.payment_reference = payment_reference

    def cancel(self) -> None:
        self.transition_to(BookingStatus.CANCELED)

    def refund(self) -> None:
        self.transition_to(BookingStatus.REFUNDED)
