"""
Webhook endpoint view for Square.

Square expects a 2xx quickly and redelivers anything else, so the view
answers with the status that tells Square whether to retry:

    200  processed, duplicate, ignored or unknown payment
    400  unparseable body or rejected request (no retry will help)
    401  signature failure
    404  referenced record missing
    500  unexpected error; the stored event stays FAILED for replay

Usage:
    # In urls.py
    from paywall.webhooks.views import square_webhook

    urlpatterns = [
        path("webhooks/square/", square_webhook, name="square_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from core.exceptions import BaseApplicationError

from paywall.webhooks.processor import WebhookProcessor
from paywall.webhooks.signature import SIGNATURE_HEADER

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def square_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive and process a Square webhook delivery.

    Processing is synchronous: the purchase transitions are small and
    idempotent, and answering after the commit lets Square redeliver on
    any failure.
    """
    try:
        result = WebhookProcessor().ingest(
            body=request.body,
            signature=request.headers.get(SIGNATURE_HEADER),
            request_url=request.build_absolute_uri(),
        )
    except BaseApplicationError as e:
        return JsonResponse(e.to_dict(), status=e.status_code)
    except Exception:
        logger.error("Unexpected error processing Square webhook", exc_info=True)
        return JsonResponse(
            {"error": "Webhook processing failed", "error_code": "INTERNAL_ERROR"},
            status=500,
        )

    logger.info("Square webhook handled", extra={"outcome": result.data})
    return JsonResponse({"received": True})
