"""
Refund model for money returned to a payer.

At most one Refund exists per Purchase; the one-to-one column makes the
database reject a second row even when two issuers race.

A Refund row is written before the processor is called. ``processed_at``
stays NULL until the processor accepts the refund, which is what the
retry sweep looks for.

Usage:
    from paywall.models import Refund

    unprocessed = Refund.objects.filter(processed_at__isnull=True)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from paywall.types import TelemetrySnapshot


class Refund(UUIDPrimaryKeyMixin, BaseModel):
    """
    Money returned to the payer of a Purchase.

    Fields:
        purchase: Refunded purchase (one-to-one)
        amount_cents / currency: Refund amount
        reason_code: Why the refund was issued (policy rule or admin code)
        applied_rule: Evaluator rule that fired, if policy-driven
        rule_version: Version of the refund rules used for the decision
        telemetry_summary: TelemetrySnapshot captured at decision time
        external_refund_id: Processor refund id once accepted
        processed_at: When the processor accepted the refund
        submission_attempts: Processor submissions so far
        last_error: Last processor error, if any
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    purchase = models.OneToOneField(
        "paywall.Purchase",
        on_delete=models.PROTECT,
        related_name="refund",
        help_text="Purchase being refunded (at most one refund per purchase)",
    )

    # ==========================================================================
    # Amount & Decision
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Refund amount in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    reason_code = models.CharField(
        max_length=100,
        help_text="Reason for the refund",
    )

    applied_rule = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Refund policy rule that fired",
    )

    rule_version = models.CharField(
        max_length=20,
        help_text="Version of the refund rules applied",
    )

    telemetry_summary = models.JSONField(
        default=dict,
        help_text="Aggregated telemetry and ratios at decision time",
    )

    # ==========================================================================
    # Processor Submission
    # ==========================================================================

    external_refund_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Square refund ID",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="When the processor accepted the refund (NULL = needs submission)",
    )

    submission_attempts = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processor submissions",
    )

    last_submitted_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the last submission was attempted",
    )

    last_error = models.TextField(
        null=True,
        blank=True,
        help_text="Error from the last failed submission",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Refund"
        verbose_name_plural = "Refunds"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount_cents__gt=0),
                name="refund_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency}"
        return f"Refund({self.id}, {amount_display})"

    @property
    def is_processed(self) -> bool:
        return self.processed_at is not None

    @property
    def telemetry_snapshot(self) -> TelemetrySnapshot:
        """The stored telemetry summary as a typed record."""
        return TelemetrySnapshot.from_dict(self.telemetry_summary)

    def record_submission_attempt(self) -> None:
        """
        Count a processor submission.

        Note: Does not save - caller must save after calling.
        """
        self.submission_attempts += 1
        self.last_submitted_at = timezone.now()

    def mark_processed(self, external_refund_id: str) -> None:
        """
        Record that the processor accepted the refund.

        Note: Does not save - caller must save after calling.
        """
        self.external_refund_id = external_refund_id
        self.processed_at = timezone.now()
        self.last_error = None

    def mark_submission_failed(self, error_message: str) -> None:
        """
        Record a failed submission; processed_at stays NULL.

        Note: Does not save - caller must save after calling.
        """
        self.last_error = error_message
