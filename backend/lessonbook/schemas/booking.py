# backend/lessonbook/schemas/booking.py
"""
Booking schemas for Lessonbook.

Checkout accepts only offset-qualified start instants; the duration is
validated by the service so the grid limitation is reported consistently.
"""

from typing import List, Optional

from pydantic import AwareDatetime, Field

from ._strict_base import StrictModel, StrictRequestModel, UtcInstant


class CheckoutRequest(StrictRequestModel):
    teacher_id: str = Field(..., min_length=1, max_length=26)
    start_utc: AwareDatetime
    duration_minutes: int


class BookingResponse(StrictModel):
    id: str
    teacher_id: str
    student_id: str
    start_utc: UtcInstant
    end_utc: UtcInstant
    duration_minutes: int
    price_cents: int
    currency: str
    status: str
    paid_at: Optional[UtcInstant] = None
    cancelled_at: Optional[UtcInstant] = None


class CheckoutResponse(StrictModel):
    checkout_url: str
    booking: BookingResponse


class CancelResponse(StrictModel):
    ok: bool = True
    restored: int
    booking: BookingResponse


class BookingListResponse(StrictModel):
    count: int
    bookings: List[BookingResponse]
