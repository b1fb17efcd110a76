"""
Celery tasks for the paywall.

This module provides periodic tasks for:
- Replaying failed webhook events
- Resetting webhook events stuck in PROCESSING
- Resubmitting refunds the processor has not accepted yet

All three are scheduled by celery-beat (see migration 0002).

Usage:
    from paywall.tasks import retry_unprocessed_refunds

    retry_unprocessed_refunds.delay()
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from core.exceptions import BaseApplicationError

from paywall.models import Refund, WebhookEvent
from paywall.models.webhook_event import MAX_WEBHOOK_RETRIES
from paywall.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

STUCK_PROCESSING_THRESHOLD_MINUTES = 30
REFUND_RETRY_GRACE_SECONDS = 60
BATCH_SIZE = 100


# =============================================================================
# Webhook Tasks
# =============================================================================


@shared_task
def replay_failed_webhooks() -> dict:
    """
    Replay failed webhook events that still have retries left.

    Each replay records its own outcome on the event row; one failing
    event does not stop the batch.

    Returns:
        Dict with processed and failed counts
    """
    from paywall.webhooks.processor import WebhookProcessor

    failed_events = WebhookEvent.objects.filter(
        status=WebhookEventStatus.FAILED,
        retry_count__lt=MAX_WEBHOOK_RETRIES,
    ).order_by("created_at")[:BATCH_SIZE]

    processor = WebhookProcessor()
    processed_count = 0
    failed_count = 0
    for webhook_event in failed_events:
        try:
            processor.replay(webhook_event)
            processed_count += 1
        except Exception:
            # run() already marked the event FAILED and logged the traceback.
            failed_count += 1

    logger.info(
        "Replayed failed webhooks",
        extra={"processed_count": processed_count, "failed_count": failed_count},
    )
    return {"processed_count": processed_count, "failed_count": failed_count}


@shared_task
def cleanup_stuck_webhooks() -> dict:
    """
    Reset webhook events stuck in PROCESSING so they can be replayed.

    Handles workers that died mid-event.

    Returns:
        Dict with count of events reset
    """
    threshold = timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES)
    stuck_events = WebhookEvent.objects.filter(
        status=WebhookEventStatus.PROCESSING,
        updated_at__lt=threshold,
    )

    reset_count = 0
    for webhook_event in stuck_events:
        webhook_event.mark_failed("Processing timed out - reset for retry")
        webhook_event.save(update_fields=["status", "error_message", "updated_at"])
        reset_count += 1
        logger.warning(
            "Reset stuck webhook",
            extra={
                "provider_event_id": webhook_event.provider_event_id,
                "stuck_since": webhook_event.updated_at.isoformat(),
            },
        )

    return {"reset_count": reset_count}


# =============================================================================
# Refund Tasks
# =============================================================================


@shared_task
def retry_unprocessed_refunds() -> dict:
    """
    Resubmit refunds whose processor call failed or timed out.

    Picks refunds with processed_at NULL and fewer than
    REFUND_RETRY_MAX_ATTEMPTS submissions, skipping any submitted in the
    last minute (an issuer may still be waiting on the processor). No
    eligibility re-check and no second Refund row: only the processor
    call is repeated, under a new idempotency key.

    Returns:
        Dict with submitted and failed counts
    """
    from paywall.services import RefundIssuer

    grace_cutoff = timezone.now() - timedelta(seconds=REFUND_RETRY_GRACE_SECONDS)
    refunds = (
        Refund.objects.select_related("purchase__product", "purchase__viewer")
        .filter(
            processed_at__isnull=True,
            submission_attempts__lt=settings.REFUND_RETRY_MAX_ATTEMPTS,
        )
        .filter(Q(last_submitted_at__isnull=True) | Q(last_submitted_at__lt=grace_cutoff))
        .order_by("created_at")[:BATCH_SIZE]
    )

    issuer = RefundIssuer()
    submitted_count = 0
    failed_count = 0
    for refund in refunds:
        try:
            issuer.retry_submission(refund)
            submitted_count += 1
        except Exception as e:
            failed_count += 1
            logger.warning(
                "Refund resubmission failed",
                extra={
                    "refund_id": str(refund.id),
                    "attempt": refund.submission_attempts,
                    "error_code": getattr(e, "error_code", type(e).__name__),
                },
                exc_info=not isinstance(e, BaseApplicationError),
            )

    logger.info(
        "Retried unprocessed refunds",
        extra={"submitted_count": submitted_count, "failed_count": failed_count},
    )
    return {"submitted_count": submitted_count, "failed_count": failed_count}
