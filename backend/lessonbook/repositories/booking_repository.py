# backend/lessonbook/repositories/booking_repository.py
"""
BookingRepository for Lessonbook

Bookings are looked up by id, by checkout session, by payment reference and
by teacher time range. Rows are never deleted.
"""

from datetime import datetime
import logging
from typing import Iterable, List, Optional, Sequence, Tuple, cast

from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import BookingStatus
from ..core.exceptions import RepositoryException
from ..models.booking import HOLDING_STATUSES, Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)

    def get_for_update(self, booking_id: str) -> Optional[Booking]:
        """Load a booking with a row lock for a state transition."""
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking).filter(Booking.id == booking_id).with_for_update().first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error locking booking {booking_id}: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def get_by_payment_reference(self, payment_reference: str) -> Optional[Booking]:
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .filter(Booking.payment_reference == payment_reference)
                .with_for_update()
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking by payment reference: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def get_by_checkout_session_id(self, session_id: str) -> Optional[Booking]:
        try:
            return cast(
                Optional[Booking],
                self.db.query(Booking)
                .filter(Booking.stripe_checkout_session_id == session_id)
                .with_for_update()
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading booking by checkout session: {str(e)}")
            raise RepositoryException(f"Failed to load booking: {str(e)}")

    def list_for_student(self, student_id: str) -> List[Booking]:
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(Booking.student_id == student_id)
                .order_by(Booking.start_utc.desc())
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing student bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def list_for_teacher_in_range(
        self,
        teacher_id: str,
        start: datetime,
        end: datetime,
        statuses: Iterable[BookingStatus],
    ) -> List[Booking]:
        """Teacher bookings in ``statuses`` that intersect ``[start, end)``."""
        status_values = [status.value for status in statuses]
        try:
            return cast(
                List[Booking],
                self.db.query(Booking)
                .filter(
                    and_(
                        Booking.teacher_id == teacher_id,
                        Booking.status.in_(status_values),
                        Booking.start_utc < end,
                        Booking.end_utc > start,
                    )
                )
                .order_by(Booking.start_utc)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing teacher bookings: {str(e)}")
            raise RepositoryException(f"Failed to list bookings: {str(e)}")

    def drop_held_blocks(
        self,
        teacher_id: str,
        blocks: Sequence[Tuple[datetime, datetime]],
        exclude_booking_id: Optional[str] = None,
    ) -> List[Tuple[datetime, datetime]]:
        """
        Remove blocks that a pending or paid booking of the teacher covers.

        Every write that puts blocks back into the store goes through here,
        so time already sold can never be offered again.
        """
        if not blocks:
            return []
        span_start = min(start for start, _ in blocks)
        span_end = max(end for _, end in blocks)
        holders = [
            booking
            for booking in self.list_for_teacher_in_range(
                teacher_id, span_start, span_end, HOLDING_STATUSES
            )
            if booking.id != exclude_booking_id
        ]
        return [
            (start, end)
            for start, end in blocks
            if not any(h.start_utc < end and h.end_utc > start for h in holders)
        ]
