# backend/lessonbook/routes/v1/bookings.py
"""
Booking routes - API v1

Endpoints:
    POST /checkout               → Reserve a slot and start payment
    POST /{booking_id}/cancel    → Cancel a pending booking
    GET  /                       → List the student's bookings
    GET  /{booking_id}           → Booking detail for its student or teacher
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Path, status

from ...api.dependencies.auth import get_request_context
from ...api.dependencies.services import get_booking_service
from ...core.exceptions import DomainException
from ...principal import RequestContext
from ...schemas.booking import (
    BookingListResponse,
    BookingResponse,
    CancelResponse,
    CheckoutRequest,
    CheckoutResponse,
)
from ...services.booking_service import BookingService
from ..errors import handle_domain_exception

logger = logging.getLogger(__name__)

ULID_PATH_PATTERN = r"^[0-9A-HJKMNP-TV-Z]{26}$"

router = APIRouter(tags=["bookings-v1"])


@router.post("/checkout", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def create_checkout(
    payload: CheckoutRequest,
    ctx: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> CheckoutResponse:
    """
    Reserve ``[start_utc, start_utc + duration)`` for the caller.

    The consumed blocks are gone once this returns; the booking stays
    pending until the payment provider confirms it, unless payments are
    disabled, in which case it is already paid.
    """
    try:
        result = await asyncio.to_thread(
            booking_service.reserve,
            ctx,
            payload.teacher_id,
            payload.start_utc,
            payload.duration_minutes,
        )
    except DomainException as e:
        handle_domain_exception(e)

    return CheckoutResponse(
        checkout_url=result.checkout_url,
        booking=BookingResponse.model_validate(result.booking),
    )


@router.post("/{booking_id}/cancel", response_model=CancelResponse)
async def cancel_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN, description="Booking ULID"),
    ctx: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> CancelResponse:
    try:
        result = await asyncio.to_thread(booking_service.cancel_booking, ctx, booking_id)
    except DomainException as e:
        handle_domain_exception(e)

    return CancelResponse(
        restored=result.restored,
        booking=BookingResponse.model_validate(result.booking),
    )


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    ctx: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingListResponse:
    bookings = await asyncio.to_thread(booking_service.list_bookings_for_student, ctx)
    return BookingListResponse(
        count=len(bookings),
        bookings=[BookingResponse.model_validate(b) for b in bookings],
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str = Path(..., pattern=ULID_PATH_PATTERN, description="Booking ULID"),
    ctx: RequestContext = Depends(get_request_context),
    booking_service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        booking = await asyncio.to_thread(booking_service.get_booking_for_user, ctx, booking_id)
    except DomainException as e:
        handle_domain_exception(e)
    return BookingResponse.model_validate(booking)
