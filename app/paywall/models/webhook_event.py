"""
WebhookEvent model for provider webhook tracking.

Stores every authenticated webhook delivery for idempotent processing and
audit. The unique provider_event_id means a redelivered event maps to the
row stored the first time.

Usage:
    from paywall.models import WebhookEvent
    from paywall.state_machines import WebhookEventStatus

    event, created = WebhookEvent.objects.get_or_create(
        provider_event_id="a1b2c3",
        defaults={"event_type": "payment.updated", "payload": payload},
    )

    if not created and event.is_processed:
        # Duplicate delivery - already handled
        ...
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from paywall.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    A provider webhook delivery.

    Processing Flow:
        1. Signature verified
        2. Insert/get WebhookEvent by provider_event_id
        3. If PROCESSED -> answer received (duplicate)
        4. Mark PROCESSING, run the WebhookProcessor
        5. Mark PROCESSED, or FAILED with the error for replay

    Fields:
        provider_event_id: Provider event id (or SHA-256 of the body when
            the provider sent none)
        event_type: Provider event type
        payload: Parsed JSON body
        status: Processing status
        processed_at: When handling finished
        error_message: Last handler error
        retry_count: Number of processing attempts
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    provider_event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Provider event ID - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Provider event type (e.g., 'payment.updated')",
    )

    # ==========================================================================
    # Payload
    # ==========================================================================

    payload = models.JSONField(
        help_text="Full webhook payload (JSON)",
    )

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
        help_text="Current processing status",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When event was successfully processed",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed",
    )

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.provider_event_id}, {self.event_type})"

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def can_retry(self) -> bool:
        """Check if event can be replayed (failed with retry count < max)."""
        return (
            self.status == WebhookEventStatus.FAILED
            and self.retry_count < MAX_WEBHOOK_RETRIES
        )

    def mark_processing(self) -> None:
        """
        Mark event as being processed.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        """
        Mark event as handled.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """
        Mark event as failed with error message.

        Note: Does not save - caller must save after calling.
        """
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message
