"""
Refund issuance and processor submission.

This module provides the RefundIssuer service which turns a positive
refund evaluation into money returned to the payer.

Two-Phase Pattern:
    1. In one transaction: lock the purchase, re-check that no refund
       exists, re-run the evaluator, insert the Refund row, move the
       purchase to refunded/partially_refunded and book the ledger.
    2. Outside the transaction: submit the refund to the processor with
       an idempotency key derived from the refund id and the attempt time.
       Success sets processed_at; failure records the error, leaves
       processed_at NULL and re-raises.

A Refund with processed_at NULL is the signal for the retry sweep
(paywall.tasks.retry_unprocessed_refunds), which calls
``submit_refund`` again without re-evaluating eligibility. The processor is
never called inside a transaction that could roll back the Refund row.

Usage:
    from paywall.services import RefundIssuer

    issuer = RefundIssuer()
    evaluation = issuer.evaluate_for_purchase(purchase.id)
    if evaluation.eligible:
        refund = issuer.issue_refund(purchase.id)
"""

from __future__ import annotations

import time
import uuid
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction

from core.services import BaseService
from playback.services import TelemetryAggregator
from playback.types import TelemetrySummary

from paywall.adapters import CreateRefundParams, IdempotencyKeyGenerator, SquareAdapter
from paywall.exceptions import (
    AlreadyRefundedError,
    InvalidStateTransitionError,
    PaymentProcessorError,
    RefundNotEligibleError,
)
from paywall.models import Purchase, Refund
from paywall.protocols import PaymentProcessor, PayerNotifier
from paywall.services.ledger_service import LedgerService
from paywall.services.notifications import EmailPayerNotifier
from paywall.services.purchase_ledger import PurchaseLedger
from paywall.services.refund_evaluator import RefundRules, evaluate, not_eligible
from paywall.types import EvaluationResult


def expected_duration_ms(purchase: Purchase, default_minutes: int | None = None) -> int:
    """
    Scheduled length of the purchased product.

    Falls back to DEFAULT_GAME_DURATION_MINUTES when the schedule is not
    fully known.
    """
    duration = purchase.product.scheduled_duration
    if duration is None:
        if default_minutes is None:
            default_minutes = settings.DEFAULT_GAME_DURATION_MINUTES
        duration = timedelta(minutes=default_minutes)
    return int(duration.total_seconds() * 1000)


class RefundIssuer(BaseService):
    """
    Evaluates, persists and submits refunds.

    Args:
        purchase_ledger: Purchase state owner
        processor: PaymentProcessor used for refunds (Square by default)
        notifier: PayerNotifier for the refund notice
        aggregator: Telemetry source
        ledger_service: Marketplace ledger bookings
        rules: Refund thresholds (defaults to settings)
    """

    def __init__(
        self,
        purchase_ledger: PurchaseLedger | None = None,
        processor: PaymentProcessor | None = None,
        notifier: PayerNotifier | None = None,
        aggregator: TelemetryAggregator | None = None,
        ledger_service: LedgerService | None = None,
        rules: RefundRules | None = None,
    ):
        self.purchase_ledger = purchase_ledger or PurchaseLedger()
        self.processor = processor or SquareAdapter.from_settings()
        self.notifier = notifier or EmailPayerNotifier()
        self.aggregator = aggregator or TelemetryAggregator()
        self.ledger_service = ledger_service or LedgerService()
        self.rules = rules or RefundRules.from_settings()

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate_for_purchase(
        self,
        purchase_id: uuid.UUID,
        telemetry: TelemetrySummary | None = None,
    ) -> EvaluationResult:
        """
        Evaluate refund eligibility for a purchase.

        A purchase that already has a refund is not eligible, and its
        telemetry is not aggregated.

        Args:
            purchase_id: Purchase to evaluate
            telemetry: Telemetry to use instead of aggregating sessions

        Raises:
            PurchaseNotFoundError: Unknown purchase
        """
        purchase = self.purchase_ledger.get_purchase(purchase_id)
        return self._evaluate(purchase, telemetry)

    def _evaluate(
        self,
        purchase: Purchase,
        telemetry: TelemetrySummary | None,
    ) -> EvaluationResult:
        if Refund.objects.filter(purchase=purchase).exists():
            return not_eligible(self.rules)

        if telemetry is None:
            telemetry = self.aggregator.summarize_for_purchase(purchase)

        return evaluate(
            purchase_amount_cents=purchase.amount_cents,
            telemetry=telemetry,
            expected_duration_ms=expected_duration_ms(purchase),
            rules=self.rules,
        )

    # =========================================================================
    # Issuance
    # =========================================================================

    def issue_refund(
        self,
        purchase_id: uuid.UUID,
        telemetry: TelemetrySummary | None = None,
        reason_code: str | None = None,
    ) -> Refund:
        """
        Issue the policy refund for a purchase.

        Args:
            purchase_id: Purchase to refund
            telemetry: Telemetry to decide on (aggregated when omitted)
            reason_code: Used when the evaluation carries no reason

        Returns:
            The persisted Refund; processed_at is set when the processor
            accepted it

        Raises:
            PurchaseNotFoundError: Unknown purchase
            AlreadyRefundedError: Purchase already has a refund
            RefundNotEligibleError: Policy does not grant a refund
            InvalidStateTransitionError: Purchase is not PAID
            PaymentProcessorError: Submission failed (the Refund persists)
        """
        refund = self._persist_refund(purchase_id, telemetry, reason_code)
        self.submit_refund(refund)
        self._notify(refund)
        return refund

    def _persist_refund(
        self,
        purchase_id: uuid.UUID,
        telemetry: TelemetrySummary | None,
        reason_code: str | None,
    ) -> Refund:
        with self.atomic():
            purchase = self.purchase_ledger.lock_for_update(purchase_id)

            if Refund.objects.filter(purchase=purchase).exists():
                raise AlreadyRefundedError(
                    "Purchase already refunded",
                    details={"purchase_id": str(purchase_id)},
                )

            evaluation = self._evaluate(purchase, telemetry)
            if not evaluation.eligible or evaluation.amount_cents <= 0:
                raise RefundNotEligibleError(
                    "Purchase not eligible for refund",
                    details={"purchase_id": str(purchase_id), **evaluation.to_dict()},
                )

            try:
                with transaction.atomic():
                    refund = Refund.objects.create(
                        purchase=purchase,
                        amount_cents=evaluation.amount_cents,
                        currency=purchase.currency,
                        reason_code=evaluation.reason_code or reason_code or "policy",
                        applied_rule=evaluation.applied_rule,
                        rule_version=evaluation.rule_version,
                        telemetry_summary=evaluation.snapshot().to_dict(),
                    )
            except IntegrityError as e:
                raise AlreadyRefundedError(
                    "Purchase already refunded",
                    details={"purchase_id": str(purchase_id)},
                ) from e

            self.purchase_ledger.mark_refunded(
                purchase.id,
                is_full=refund.amount_cents >= purchase.amount_cents,
            )
            refund.purchase = Purchase.objects.select_related("product", "viewer").get(
                id=purchase.id
            )
            self.ledger_service.record_refund(refund)

        self.get_logger().info(
            "Refund persisted",
            extra={
                "refund_id": str(refund.id),
                "purchase_id": str(purchase_id),
                "amount_cents": refund.amount_cents,
                "applied_rule": refund.applied_rule,
                "rule_version": refund.rule_version,
            },
        )
        return refund

    # =========================================================================
    # Submission
    # =========================================================================

    def submit_refund(self, refund: Refund) -> Refund:
        """
        Send a persisted refund to the processor.

        Already processed refunds are returned unchanged. Each attempt uses
        a fresh idempotency key from the refund id and the attempt time.

        Raises:
            InvalidStateTransitionError: Purchase has no processor payment id
            PaymentProcessorError: Processor call failed; the error is
                recorded on the refund before re-raising
        """
        if refund.is_processed:
            return refund

        purchase = refund.purchase
        if not purchase.external_payment_id:
            raise InvalidStateTransitionError(
                "Purchase has no payment provider ID",
                details={"refund_id": str(refund.id), "purchase_id": str(purchase.id)},
            )

        attempted_at_ms = int(time.time() * 1000)
        params = CreateRefundParams(
            payment_id=purchase.external_payment_id,
            amount_cents=refund.amount_cents,
            currency=refund.currency,
            idempotency_key=IdempotencyKeyGenerator.for_refund(refund.id, attempted_at_ms),
            reason=refund.reason_code,
        )
        refund.record_submission_attempt()
        refund.save(update_fields=["submission_attempts", "last_submitted_at", "updated_at"])

        try:
            result = self.processor.create_refund(params, trace_id=str(refund.id))
        except PaymentProcessorError as e:
            refund.mark_submission_failed(str(e))
            refund.save(update_fields=["last_error", "updated_at"])
            self.get_logger().error(
                "Refund submission failed",
                extra={
                    "refund_id": str(refund.id),
                    "purchase_id": str(purchase.id),
                    "attempt": refund.submission_attempts,
                    "is_retryable": e.is_retryable,
                },
                exc_info=True,
            )
            raise

        refund.mark_processed(result.id)
        refund.save(
            update_fields=[
                "external_refund_id",
                "processed_at",
                "last_error",
                "submission_attempts",
                "last_submitted_at",
                "updated_at",
            ]
        )
        self.get_logger().info(
            "Refund submitted",
            extra={
                "refund_id": str(refund.id),
                "external_refund_id": result.id,
                "status": result.status,
            },
        )
        return refund

    def retry_submission(self, refund: Refund) -> Refund:
        """
        Resubmit an unprocessed refund and notify the payer once it goes through.

        Raises:
            PaymentProcessorError: Processor call failed again
        """
        self.submit_refund(refund)
        self._notify(refund)
        return refund

    def _notify(self, refund: Refund) -> None:
        try:
            self.notifier.send_refund_notice(refund)
        except Exception:
            self.get_logger().warning(
                "Refund notice failed",
                extra={"refund_id": str(refund.id)},
                exc_info=True,
            )
