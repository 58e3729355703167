"""
Stripe Service for Lessonbook

Thin wrapper around Stripe Checkout and webhook verification. The booking
core talks to it through the ``PaymentGateway`` protocol so tests can swap
in a fake without network access.

Webhook events are mapped onto booking transitions:
- checkout.session.completed / async_payment_succeeded -> confirm payment
- checkout.session.expired / async_payment_failed -> payment failed
- charge.refunded -> refunded
Anything else is acknowledged and ignored.
"""

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol, Union

from sqlalchemy.orm import Session
import stripe

from ..core.config import Settings
from ..core.exceptions import PaymentProviderException, ServiceException, ValidationException
from ..models.booking import Booking
from ..models.offer import LessonOffer
from ..monitoring.prometheus_metrics import prometheus_metrics
from .base import BaseService

if TYPE_CHECKING:  # pragma: no cover
    from .booking_service import BookingService

logger: logging.Logger = logging.getLogger(__name__)

STRIPE_TIMEOUT_SECONDS = 8


@dataclass(frozen=True)
class CheckoutSession:
    session_id: str
    redirect_url: str


class PaymentGateway(Protocol):
    """Payment collaborator used by the booking core."""

    def create_checkout(
        self,
        offer: LessonOffer,
        booking: Booking,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        ...

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Any:
        ...


def _field(obj: Any, key: str) -> Any:
    """Read ``key`` from a dict or StripeObject, None when absent."""
    if obj is None:
        return None
    try:
        return obj[key]
    except (KeyError, TypeError, AttributeError):
        return None


class StripeService(BaseService):
    """
    Stripe-backed ``PaymentGateway``.

    Checkout sessions carry the booking id in metadata so the webhook can
    find the booking again.
    """

    def __init__(self, db: Session, settings: Settings):
        super().__init__(db)
        self.settings = settings
        self.stripe_configured = settings.stripe_configured
        if self.stripe_configured:
            stripe.api_key = settings.stripe_secret_key.get_secret_value()
            stripe.default_http_client = stripe.RequestsClient(timeout=STRIPE_TIMEOUT_SECONDS)
            stripe.max_network_retries = 1
            self.logger.debug("Stripe service configured")
        else:
            self.logger.warning("Stripe secret key not configured - checkout is unavailable")

    def _check_stripe_configured(self) -> None:
        if not self.stripe_configured:
            raise PaymentProviderException(
                "Payment provider is not configured",
                code="PAYMENT_PROVIDER_UNCONFIGURED",
            )

    @BaseService.measure_operation("stripe_create_checkout")
    def create_checkout(
        self,
        offer: LessonOffer,
        booking: Booking,
        success_url: str,
        cancel_url: str,
        customer_email: Optional[str] = None,
    ) -> CheckoutSession:
        """
        Create a Checkout Session for a pending booking.

        Raises:
            PaymentProviderException: Stripe is unconfigured, unreachable or
                rejected the request
        """
        self._check_stripe_configured()
        metadata = {"bookingId": booking.id}
        params: Dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": (offer.currency or "EUR").lower(),
                        "unit_amount": int(offer.price_cents),
                        "product_data": {"name": f"{offer.duration_minutes}-minute lesson"},
                    },
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": booking.id,
            "metadata": metadata,
            "payment_intent_data": {"metadata": metadata},
        }
        if customer_email:
            params["customer_email"] = customer_email

        try:
            session = stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            self.logger.error(
                f"Stripe checkout failed for booking {booking.id}: {str(e)}",
                extra={"booking_id": booking.id},
            )
            raise PaymentProviderException(
                "Payment provider rejected the checkout request",
                code="PAYMENT_PROVIDER_ERROR",
                details={"provider_error": type(e).__name__},
            ) from e

        session_id = _field(session, "id")
        redirect_url = _field(session, "url")
        if not session_id or not redirect_url:
            raise PaymentProviderException(
                "Payment provider returned an incomplete checkout session",
                code="PAYMENT_PROVIDER_ERROR",
            )
        return CheckoutSession(session_id=str(session_id), redirect_url=str(redirect_url))

    def construct_event(self, payload: bytes, signature: Optional[str]) -> Any:
        """
        Verify the webhook signature and parse the event.

        Raises:
            ValidationException: Missing or invalid signature / payload
            ServiceException: Webhook secret not configured
        """
        secret = self.settings.stripe_webhook_secret.get_secret_value()
        if not secret:
            raise ServiceException("Webhook secret not configured")
        if not signature:
            raise ValidationException("Missing Stripe signature", code="INVALID_WEBHOOK_SIGNATURE")
        try:
            return stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            self.logger.warning(f"Invalid webhook signature: {str(e)}")
            raise ValidationException(
                "Invalid Stripe signature", code="INVALID_WEBHOOK_SIGNATURE"
            ) from e
        except ValueError as e:
            self.logger.warning(f"Invalid webhook payload: {str(e)}")
            raise ValidationException("Invalid webhook payload", code="INVALID_WEBHOOK_PAYLOAD") from e


class PaymentEventHandler:
    """Applies verified payment events to bookings."""

    CONFIRM_EVENTS = frozenset(
        {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
    )
    FAILED_EVENTS = frozenset({"checkout.session.expired", "checkout.session.async_payment_failed"})
    REFUND_EVENTS = frozenset({"charge.refunded"})

    def __init__(self, booking_service: "BookingService"):
        self.booking_service = booking_service
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _booking_id(obj: Any) -> Optional[str]:
        booking_id = _field(_field(obj, "metadata"), "bookingId") or _field(
            obj, "client_reference_id"
        )
        return str(booking_id) if booking_id else None

    @staticmethod
    def _payment_reference(value: Union[str, Mapping[str, Any], None]) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        ref = _field(value, "id")
        return str(ref) if ref else None

    def handle(self, event: Any) -> Dict[str, Any]:
        """
        Route one event. Unknown or unresolvable bookings are acknowledged as no-ops.

        Returns a summary with ``event_type``, ``handled`` and ``applied``.
        """
        event_type = str(_field(event, "type") or "")
        obj = _field(_field(event, "data"), "object")
        applied = False
        handled = True

        if event_type in self.CONFIRM_EVENTS:
            unpaid = _field(obj, "payment_status") == "unpaid"
            if event_type == "checkout.session.completed" and unpaid:
                # Delayed payment methods confirm later via async_payment_succeeded
                handled = False
            else:
                applied = self.booking_service.confirm_payment(
                    self._booking_id(obj),
                    self._payment_reference(_field(obj, "payment_intent")),
                    session_id=_field(obj, "id"),
                )
        elif event_type in self.FAILED_EVENTS:
            applied = self.booking_service.mark_payment_failed(
                self._booking_id(obj), session_id=_field(obj, "id")
            )
        elif event_type in self.REFUND_EVENTS:
            applied = self.booking_service.mark_refunded(
                self._payment_reference(_field(obj, "payment_intent"))
            )
        else:
            handled = False
            self.logger.info(f"Unhandled webhook event type: {event_type}")

        result = "applied" if applied else ("noop" if handled else "ignored")
        prometheus_metrics.record_webhook_event(event_type or "unknown", result)
        return {"event_type": event_type, "handled": handled, "applied": applied}
