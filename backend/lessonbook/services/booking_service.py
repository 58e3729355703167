# backend/lessonbook/services/booking_service.py
"""
Booking Service for Lessonbook

Handles the booking transaction manager:
- Reserving atomic availability blocks for a new booking
- Student cancellation with availability restore
- Payment confirmation, failure and refund transitions from webhooks

Every mutation runs inside a single transaction. Reservation consumes the
atomic blocks by deleting them; whichever concurrent reservation commits
first wins and the other observes a short read or short delete.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import ATOMIC_BLOCK_MINUTES, RESERVABLE_DURATIONS
from ..core.enums import AvailabilitySource, BookingStatus
from ..core.exceptions import (
    BookingNotCancellableException,
    NoActiveOfferException,
    NotFoundException,
    PaymentProviderException,
    SlotUnavailableException,
    ValidationException,
)
from ..domain.grid import ATOMIC_BLOCK, is_on_grid, required_block_starts
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..principal import RequestContext
from ..repositories.factory import RepositoryFactory
from .base import BaseService
from .stripe_service import PaymentGateway

logger = logging.getLogger(__name__)

MAX_BOOKING_ID_LENGTH = 26


@dataclass(frozen=True)
class ReservationResult:
    booking: Booking
    checkout_url: str


@dataclass(frozen=True)
class CancellationResult:
    booking: Booking
    restored: int


class BookingService(BaseService):
    """Reservation, cancellation and payment transitions for bookings."""

    def __init__(self, db: Session, payment_gateway: Optional[PaymentGateway] = None):
        super().__init__(db)
        self.payment_gateway = payment_gateway
        self.repository = RepositoryFactory.create_booking_repository(db)
        self.availability_repository = RepositoryFactory.create_availability_repository(db)
        self.offer_repository = RepositoryFactory.create_offer_repository(db)

    # Reservation

    def _validate_reservation(self, start_utc: datetime, duration_minutes: int) -> None:
        if duration_minutes not in RESERVABLE_DURATIONS:
            raise ValidationException(
                "Only 30/60 supported right now (45 requires 15-min grid).",
                code="UNSUPPORTED_DURATION",
                details={
                    "duration_minutes": duration_minutes,
                    "allowed": list(RESERVABLE_DURATIONS),
                },
            )
        if start_utc.tzinfo is None or start_utc.utcoffset() is None:
            raise ValidationException(
                "start_utc must include an explicit UTC offset", code="NAIVE_TIMESTAMP"
            )
        if not is_on_grid(start_utc, ATOMIC_BLOCK_MINUTES):
            raise ValidationException(
                "start_utc must lie on the 30-minute grid",
                code="OFF_GRID_START",
                details={"start_utc": start_utc.isoformat()},
            )

    @BaseService.measure_operation("reserve")
    def reserve(
        self,
        ctx: RequestContext,
        teacher_id: str,
        start_utc: datetime,
        duration_minutes: int,
    ) -> ReservationResult:
        """
        Reserve a slot for the acting student.

        Steps, all in one transaction:
        1. Look up the active offer for the duration.
        2. Lock the atomic blocks at the required starts; all must exist.
        3. Insert a pending booking priced from the offer.
        4. Delete the consumed blocks.
        5. Create the provider checkout, or mark paid when payments are off.

        Raises:
            ValidationException: Unsupported duration or off-grid start
            NoActiveOfferException: No active price for the duration
            SlotUnavailableException: A required block is missing
            PaymentProviderException: Checkout could not be created
        """
        self._validate_reservation(start_utc, duration_minutes)
        starts = required_block_starts(start_utc, duration_minutes)
        end_utc = starts[0] + timedelta(minutes=duration_minutes)
        settings = ctx.settings

        try:
            with self.transaction():
                offer = self.offer_repository.get_active_for_duration(teacher_id, duration_minutes)
                if offer is None:
                    raise NoActiveOfferException(teacher_id, duration_minutes)

                rows = self.availability_repository.lock_blocks_at(teacher_id, starts)
                if len(rows) != len(starts) or not all(row.is_atomic for row in rows):
                    raise SlotUnavailableException(
                        details={"teacher_id": teacher_id, "start_utc": starts[0].isoformat()}
                    )

                booking = self.repository.create(
                    teacher_id=teacher_id,
                    student_id=ctx.user_id,
                    start_utc=starts[0],
                    end_utc=end_utc,
                    duration_minutes=duration_minutes,
                    price_cents=offer.price_cents,
                    currency=offer.currency,
                    status=BookingStatus.PENDING.value,
                )

                deleted = self.availability_repository.delete_blocks_by_ids(
                    teacher_id, [row.id for row in rows]
                )
                if deleted != len(starts):
                    # Another transaction consumed a block between lock and delete
                    raise SlotUnavailableException(
                        details={"teacher_id": teacher_id, "start_utc": starts[0].isoformat()}
                    )

                success_url = settings.checkout_success_url(booking.id)
                if ctx.payment_disabled:
                    booking.mark_paid()
                    checkout_url = success_url
                    outcome = "paid"
                else:
                    if self.payment_gateway is None:
                        raise PaymentProviderException(
                            "Payment provider is not configured",
                            code="PAYMENT_PROVIDER_UNCONFIGURED",
                        )
                    session = self.payment_gateway.create_checkout(
                        offer,
                        booking,
                        success_url=success_url,
                        cancel_url=settings.checkout_cancel_url(),
                        customer_email=ctx.user.email,
                    )
                    booking.stripe_checkout_session_id = session.session_id
                    checkout_url = session.redirect_url
                    outcome = "checkout"
                self.db.flush()
        except SlotUnavailableException:
            prometheus_metrics.record_reservation("slot_unavailable")
            raise
        except NoActiveOfferException:
            prometheus_metrics.record_reservation("no_offer")
            raise
        except PaymentProviderException:
            prometheus_metrics.record_reservation("payment_error")
            raise

        prometheus_metrics.record_reservation(outcome)
        self.log_operation(
            "reserve",
            booking_id=booking.id,
            teacher_id=teacher_id,
            student_id=ctx.user_id,
            duration_minutes=duration_minutes,
            status=booking.status,
        )
        return ReservationResult(booking=booking, checkout_url=checkout_url)

    # Cancellation

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, ctx: RequestContext, booking_id: str) -> CancellationResult:
        """
        Cancel a pending booking owned by the acting student.

        Cancelling an already-canceled booking only restores blocks that are
        still missing, so a retry restores zero.

        Raises:
            NotFoundException: Unknown booking or not owned by the student
            BookingNotCancellableException: Booking is paid or refunded
        """
        with self.transaction():
            booking = self.repository.get_for_update(booking_id)
            if booking is None or booking.student_id != ctx.user_id:
                raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")

            status = booking.status_enum
            if status in (BookingStatus.PAID, BookingStatus.REFUNDED):
                raise BookingNotCancellableException(booking.id, status.value)
            if status == BookingStatus.PENDING:
                booking.cancel()

            restored = self._restore_blocks(booking)

        prometheus_metrics.record_blocks_restored("student_cancel", restored)
        self.log_operation(
            "cancel_booking",
            booking_id=booking.id,
            student_id=ctx.user_id,
            previous_status=status.value,
            restored=restored,
        )
        return CancellationResult(booking=booking, restored=restored)

    def _restore_blocks(self, booking: Booking) -> int:
        """
        Reinsert the atomic blocks the booking occupied.

        Starts that already have a block, or that another pending or paid
        booking now holds, are skipped.
        """
        span = booking.end_utc - booking.start_utc
        if span <= timedelta(0) or span % ATOMIC_BLOCK != timedelta(0):
            return 0
        blocks = [
            (booking.start_utc + i * ATOMIC_BLOCK, booking.start_utc + (i + 1) * ATOMIC_BLOCK)
            for i in range(span // ATOMIC_BLOCK)
        ]
        free_blocks = self.repository.drop_held_blocks(
            booking.teacher_id, blocks, exclude_booking_id=booking.id
        )
        return self.availability_repository.insert_missing_blocks(
            booking.teacher_id, free_blocks, AvailabilitySource.MANUAL.value
        )

    # Payment events

    @staticmethod
    def _usable_booking_id(booking_id: Optional[str]) -> bool:
        return bool(booking_id) and len(str(booking_id)) <= MAX_BOOKING_ID_LENGTH

    def _load_for_payment(
        self, booking_id: Optional[str], session_id: Optional[str]
    ) -> Optional[Booking]:
        """Locked booking addressed by id, falling back to its checkout session id."""
        if self._usable_booking_id(booking_id):
            booking = self.repository.get_for_update(str(booking_id))
            if booking is not None:
                return booking
        if session_id:
            return self.repository.get_by_checkout_session_id(str(session_id))
        return None

    @BaseService.measure_operation("confirm_payment")
    def confirm_payment(
        self,
        booking_id: Optional[str],
        payment_reference: Optional[str],
        session_id: Optional[str] = None,
    ) -> bool:
        """
        Mark a pending booking paid.

        The booking is found by id or, failing that, by checkout session id.
        Unknown bookings, duplicate deliveries and bookings no longer pending
        are acknowledged as no-ops and return False.
        """
        if not self._usable_booking_id(booking_id) and not session_id:
            self.logger.info("Payment confirmation without usable booking reference ignored")
            return False

        with self.transaction():
            booking = self._load_for_payment(booking_id, session_id)
            if booking is None:
                self.logger.info(
                    f"Payment confirmation for unknown booking {booking_id or session_id}"
                )
                return False
            if booking.status_enum != BookingStatus.PENDING:
                if booking.status_enum != BookingStatus.PAID:
                    self.logger.warning(
                        f"Payment confirmed for booking {booking.id} in status {booking.status}",
                        extra={"booking_id": booking.id, "status": booking.status},
                    )
                return False
            booking.mark_paid(payment_reference)
            if session_id:
                booking.stripe_checkout_session_id = session_id

        self.log_operation("confirm_payment", booking_id=booking.id)
        return True

    @BaseService.measure_operation("mark_payment_failed")
    def mark_payment_failed(
        self, booking_id: Optional[str], session_id: Optional[str] = None
    ) -> bool:
        """Cancel a pending booking whose checkout expired or failed, restoring its blocks."""
        if not self._usable_booking_id(booking_id) and not session_id:
            return False

        with self.transaction():
            booking = self._load_for_payment(booking_id, session_id)
            if booking is None or booking.status_enum != BookingStatus.PENDING:
                return False
            booking.cancel()
            restored = self._restore_blocks(booking)

        prometheus_metrics.record_blocks_restored("payment_failed", restored)
        self.log_operation("mark_payment_failed", booking_id=booking.id, restored=restored)
        return True

    @BaseService.measure_operation("mark_refunded")
    def mark_refunded(self, payment_reference: Optional[str]) -> bool:
        """Move a paid booking to refunded; anything else is a no-op."""
        if not payment_reference:
            return False

        with self.transaction():
            booking = self.repository.get_by_payment_reference(payment_reference)
            if booking is None or booking.status_enum != BookingStatus.PAID:
                return False
            booking.refund()

        self.log_operation("mark_refunded", booking_id=booking.id)
        return True

    # Reads

    def get_booking_for_user(self, ctx: RequestContext, booking_id: str) -> Booking:
        """Booking visible to the acting user as its student or teacher."""
        booking = self.repository.get_by_id(booking_id)
        if booking is None or ctx.user_id not in (booking.student_id, booking.teacher_id):
            raise NotFoundException("Booking not found", code="BOOKING_NOT_FOUND")
        return booking

    def list_bookings_for_student(self, ctx: RequestContext) -> List[Booking]:
        return self.repository.list_for_student(ctx.user_id)
