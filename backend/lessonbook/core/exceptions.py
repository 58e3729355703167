# backend/lessonbook/core/exceptions.py
"""
Domain-specific exceptions for the Lessonbook platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException using the class status code."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when request validation fails before any transaction starts."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class BusinessRuleException(DomainException):
    """Raised when a business rule or precondition is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised when no identity was supplied by the session collaborator."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class InvalidIntervalException(ValidationException):
    """Raised for intervals with non-finite bounds or end <= start."""

    def __init__(self, start: Any, end: Any):
        super().__init__(
            message=f"Invalid interval [{start}, {end})",
            code="INVALID_INTERVAL",
            details={"start": str(start), "end": str(end)},
        )


class SlotUnavailableException(ConflictException):
    """Raised when the atomic blocks needed for a reservation are gone."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "Slot not available",
            code="SLOT_UNAVAILABLE",
            details=details or {},
        )


class BookingNotCancellableException(ConflictException):
    """Raised when a paid or refunded booking is cancelled through the student path."""

    def __init__(self, booking_id: str, current_status: str):
        super().__init__(
            message=f"Cannot cancel booking with status {current_status}",
            code="BOOKING_NOT_CANCELLABLE",
            details={"booking_id": booking_id, "status": current_status},
        )


class NoActiveOfferException(BusinessRuleException):
    """Raised when the teacher has no active price for the requested duration."""

    def __init__(self, teacher_id: str, duration_minutes: int):
        super().__init__(
            message="No price for this duration",
            code="NO_ACTIVE_OFFER",
            details={"teacher_id": teacher_id, "duration_minutes": duration_minutes},
        )


class PaymentProviderException(ServiceException):
    """Raised when the payment provider is unreachable or rejects a request."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": self.message or "Payment provider unavailable",
                "code": self.code,
                "details": self.details,
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
