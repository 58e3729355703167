# backend/lessonbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

from fastapi import Depends
from sqlalchemy.orm import Session

from ...core.config import Settings
from ...services.availability_query_service import AvailabilityQueryService
from ...services.availability_service import AvailabilityService
from ...services.booking_service import BookingService
from ...services.offer_service import OfferService
from ...services.stripe_service import PaymentEventHandler, PaymentGateway, StripeService
from .auth import get_settings
from .database import get_db


def get_availability_service(
    db: Session = Depends(get_db), app_settings: Settings = Depends(get_settings)
) -> AvailabilityService:
    return AvailabilityService(db, horizon_days=app_settings.availability_horizon_days)


def get_availability_query_service(
    db: Session = Depends(get_db), app_settings: Settings = Depends(get_settings)
) -> AvailabilityQueryService:
    return AvailabilityQueryService(db, default_timezone=app_settings.default_timezone)


def get_offer_service(db: Session = Depends(get_db)) -> OfferService:
    return OfferService(db)


def get_payment_gateway(
    db: Session = Depends(get_db), app_settings: Settings = Depends(get_settings)
) -> PaymentGateway:
    """Stripe-backed gateway; tests override this with a fake."""
    return StripeService(db, app_settings)


def get_booking_service(
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> BookingService:
    """
    Get booking service instance.

    Args:
        db: Database session
        gateway: Payment gateway used for checkout sessions

    Returns:
        BookingService instance
    """
    return BookingService(db, payment_gateway=gateway)


def get_payment_event_handler(
    booking_service: BookingService = Depends(get_booking_service),
) -> PaymentEventHandler:
    return PaymentEventHandler(booking_service)
