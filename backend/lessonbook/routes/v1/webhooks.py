# backend/lessonbook/routes/v1/webhooks.py
"""
Payment webhook route - API v1

POST /stripe has no authentication; it relies on Stripe signature
verification. Verified events are always acknowledged with 200, including
events for unknown bookings, so the provider stops retrying them. Database
failures surface as 500 and are retried by the provider.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Request

from ...api.dependencies.services import get_payment_event_handler, get_payment_gateway
from ...core.exceptions import DomainException
from ...schemas.payment import WebhookAckResponse
from ...services.stripe_service import PaymentEventHandler, PaymentGateway
from ..errors import handle_domain_exception

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks-v1"])


@router.post("/stripe", response_model=WebhookAckResponse)
async def handle_stripe_webhook(
    request: Request,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    handler: PaymentEventHandler = Depends(get_payment_event_handler),
) -> WebhookAckResponse:
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    try:
        event = gateway.construct_event(payload, signature)
        summary = await asyncio.to_thread(handler.handle, event)
    except DomainException as e:
        handle_domain_exception(e)

    logger.info(
        f"Webhook processed: {summary['event_type']}",
        extra={"applied": summary["applied"], "handled": summary["handled"]},
    )
    return WebhookAckResponse(**summary)
