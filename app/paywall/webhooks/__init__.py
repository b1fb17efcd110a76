"""
Webhook handling for Square payment events.

Deliveries are verified, stored idempotently in WebhookEvent and processed
synchronously; failed events are replayed by a Celery beat task.

Usage:
    # In urls.py
    from paywall.webhooks.views import square_webhook

    urlpatterns = [
        path("webhooks/square/", square_webhook, name="square_webhook"),
    ]
"""

from paywall.webhooks.events import (
    PaymentEvent,
    RefundEvent,
    UnrecognizedEvent,
    parse_event,
)
from paywall.webhooks.processor import WebhookProcessor
from paywall.webhooks.signature import SquareSignatureVerifier

__all__ = [
    "PaymentEvent",
    "RefundEvent",
    "SquareSignatureVerifier",
    "UnrecognizedEvent",
    "WebhookProcessor",
    "parse_event",
]
