# backend/lessonbook/api/dependencies/__init__.py
"""
Central export point for all dependencies.

This module re-exports all dependencies from submodules
for convenient access throughout the application.
"""

from .auth import (
    get_current_user,
    get_current_user_optional,
    get_request_context,
    get_settings,
    require_teacher_owner,
)
from .database import get_db
from .params import parse_utc_boundary
from .services import (
    get_availability_query_service,
    get_availability_service,
    get_booking_service,
    get_offer_service,
    get_payment_event_handler,
    get_payment_gateway,
)

__all__ = [
    # Auth
    "get_current_user",
    "get_current_user_optional",
    "get_request_context",
    "get_settings",
    "require_teacher_owner",
    # Database
    "get_db",
    # Params
    "parse_utc_boundary",
    # Services
    "get_availability_service",
    "get_availability_query_service",
    "get_booking_service",
    "get_offer_service",
    "get_payment_gateway",
    "get_payment_event_handler",
]
