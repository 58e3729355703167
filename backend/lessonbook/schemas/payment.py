# backend/lessonbook/schemas/payment.py
"""Payment webhook acknowledgement."""

from ._strict_base import StrictModel


class WebhookAckResponse(StrictModel):
    received: bool = True
    event_type: str
    handled: bool
    applied: bool
