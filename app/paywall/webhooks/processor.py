"""
Square webhook processing.

The WebhookProcessor turns authenticated Square deliveries into purchase
transitions. Every step is idempotent, keyed by the payment id or the
purchase id, so a redelivered or replayed event is harmless.

Flow (``ingest``):
    1. Verify the signature (WebhookSignatureError -> 401)
    2. Decode and parse into a typed event (BadRequestError -> 400)
    3. Store a WebhookEvent keyed by Square's event id (or a body hash)
    4. Already PROCESSED -> duplicate, nothing to do
    5. Dispatch on the event variant, then mark PROCESSED, or FAILED and
       re-raise so the caller answers non-2xx and Square redelivers

Dispatch:
    PaymentEvent COMPLETED          -> fulfill (paid + ledger + entitlement)
    PaymentEvent FAILED / CANCELED  -> mark failed
    RefundEvent (provider refund)   -> mark refunded + ledger
    UnrecognizedEvent               -> ignored

Events for payment ids we do not know are ignored: the Square account may
be shared with other systems. Illegal transitions (events arriving out of
order) are logged and the event counts as handled.
"""

from __future__ import annotations

import hashlib
import json
from typing import Callable

from core.exceptions import BadRequestError
from core.services import BaseService, ServiceResult

from paywall.exceptions import InvalidStateTransitionError
from paywall.models import Refund, WebhookEvent
from paywall.services.fulfillment import PaymentFulfillment
from paywall.services.ledger_service import LedgerService
from paywall.services.purchase_ledger import PurchaseLedger
from paywall.webhooks.events import (
    PaymentEvent,
    RefundEvent,
    UnrecognizedEvent,
    WebhookEventData,
    parse_event,
)
from paywall.webhooks.signature import SquareSignatureVerifier

PAYMENT_COMPLETED = "COMPLETED"
PAYMENT_FAILED_STATUSES = frozenset({"FAILED", "CANCELED"})
REFUND_FAILED_STATUSES = frozenset({"REJECTED", "FAILED"})

# Outcome labels carried in ServiceResult.data
OUTCOME_PAID = "paid"
OUTCOME_FAILED = "failed"
OUTCOME_REFUNDED = "refunded"
OUTCOME_DUPLICATE = "duplicate"
OUTCOME_IGNORED = "ignored"
OUTCOME_UNKNOWN_PAYMENT = "unknown_payment"
OUTCOME_ILLEGAL_TRANSITION = "illegal_transition"


def provider_event_id(payload: dict, body: bytes) -> str:
    """Square's event id, or a SHA-256 of the body when there is none."""
    event_id = payload.get("event_id") or payload.get("eventId")
    if event_id:
        return str(event_id)
    return f"sha256:{hashlib.sha256(body).hexdigest()}"


class WebhookProcessor(BaseService):
    """
    Ingests Square webhooks.

    Args:
        purchase_ledger: Purchase state owner
        fulfillment: Completes paid purchases
        ledger_service: Books provider-initiated refunds
        verifier: Signature verifier (from settings by default)
    """

    def __init__(
        self,
        purchase_ledger: PurchaseLedger | None = None,
        fulfillment: PaymentFulfillment | None = None,
        ledger_service: LedgerService | None = None,
        verifier: SquareSignatureVerifier | None = None,
    ):
        self.purchase_ledger = purchase_ledger or PurchaseLedger()
        self.fulfillment = fulfillment or PaymentFulfillment(
            purchase_ledger=self.purchase_ledger
        )
        self.ledger_service = ledger_service or LedgerService()
        self.verifier = verifier or SquareSignatureVerifier.from_settings()
        self._handlers: dict[type, Callable[..., ServiceResult[str]]] = {
            PaymentEvent: self._handle_payment,
            RefundEvent: self._handle_refund,
            UnrecognizedEvent: self._handle_unrecognized,
        }

    # =========================================================================
    # Entry Points
    # =========================================================================

    def ingest(
        self,
        body: bytes,
        signature: str | None,
        request_url: str | None,
    ) -> ServiceResult[str]:
        """
        Verify, store and process one delivery.

        Returns:
            ServiceResult whose data is the outcome label

        Raises:
            WebhookSignatureError: Signature missing or wrong
            BadRequestError: Body is not a JSON object
            Any handler error, after the event is marked FAILED
        """
        self.verifier.verify(body, signature, request_url)

        try:
            payload = json.loads(body)
            event = parse_event(payload)
        except ValueError as e:
            raise BadRequestError("Invalid webhook payload") from e

        webhook_event, created = WebhookEvent.objects.get_or_create(
            provider_event_id=provider_event_id(payload, body),
            defaults={"event_type": event.event_type, "payload": payload},
        )

        if not created and webhook_event.is_processed:
            self.get_logger().info(
                "Webhook already processed",
                extra={"provider_event_id": webhook_event.provider_event_id},
            )
            return ServiceResult.success(OUTCOME_DUPLICATE)

        return self.run(webhook_event, event)

    def replay(self, webhook_event: WebhookEvent) -> ServiceResult[str]:
        """Process a stored event again (used by the replay task)."""
        return self.run(webhook_event, parse_event(webhook_event.payload))

    def run(self, webhook_event: WebhookEvent, event: WebhookEventData) -> ServiceResult[str]:
        """Process a stored event, recording the outcome on the row."""
        webhook_event.mark_processing()
        webhook_event.save(update_fields=["status", "retry_count", "updated_at"])

        try:
            result = self.process(event)
        except Exception as e:
            webhook_event.mark_failed(f"{type(e).__name__}: {e}")
            webhook_event.save(update_fields=["status", "error_message", "updated_at"])
            self.get_logger().error(
                "Webhook processing failed",
                extra={
                    "provider_event_id": webhook_event.provider_event_id,
                    "event_type": webhook_event.event_type,
                    "retry_count": webhook_event.retry_count,
                },
                exc_info=True,
            )
            raise

        webhook_event.mark_processed()
        webhook_event.save(
            update_fields=["status", "processed_at", "error_message", "updated_at"]
        )
        return result

    def process(self, event: WebhookEventData) -> ServiceResult[str]:
        """Apply a parsed event to purchase state."""
        return self._handlers[type(event)](event)

    # =========================================================================
    # Handlers
    # =========================================================================

    def _handle_payment(self, event: PaymentEvent) -> ServiceResult[str]:
        purchase = self.purchase_ledger.find_by_external_payment_id(event.payment_id)
        if purchase is None:
            return self._unknown_payment(event.event_type, event.payment_id)

        try:
            if event.status == PAYMENT_COMPLETED:
                self.fulfillment.fulfill(
                    purchase.id,
                    external_payment_id=event.payment_id,
                    payer_external_id=event.customer_id,
                    processor_fee_cents=event.processing_fee_cents,
                )
                return ServiceResult.success(OUTCOME_PAID)

            if event.status in PAYMENT_FAILED_STATUSES:
                self.purchase_ledger.mark_failed(purchase.id)
                return ServiceResult.success(OUTCOME_FAILED)
        except InvalidStateTransitionError as e:
            return self._illegal_transition(event.event_type, e)

        self.get_logger().info(
            "Payment status needs no transition",
            extra={"external_payment_id": event.payment_id, "status": event.status},
        )
        return ServiceResult.success(OUTCOME_IGNORED)

    def _handle_refund(self, event: RefundEvent) -> ServiceResult[str]:
        purchase = self.purchase_ledger.find_by_external_payment_id(event.payment_id)
        if purchase is None:
            return self._unknown_payment(event.event_type, event.payment_id)

        if event.status in REFUND_FAILED_STATUSES:
            return ServiceResult.success(OUTCOME_IGNORED)

        if Refund.objects.filter(purchase=purchase).exists():
            # Issued by RefundIssuer, which already transitioned and booked it.
            return ServiceResult.success(OUTCOME_IGNORED)

        is_full = event.amount_cents >= purchase.amount_cents
        try:
            with self.atomic():
                purchase = self.purchase_ledger.mark_refunded(purchase.id, is_full=is_full)
                self.ledger_service.record_provider_refund(
                    purchase,
                    amount_cents=event.amount_cents,
                    external_refund_id=event.refund_id or f"{event.payment_id}:{event.amount_cents}",
                )
        except InvalidStateTransitionError as e:
            return self._illegal_transition(event.event_type, e)

        return ServiceResult.success(OUTCOME_REFUNDED)

    def _handle_unrecognized(self, event: UnrecognizedEvent) -> ServiceResult[str]:
        self.get_logger().info(
            "Ignoring unrecognized webhook event",
            extra={"event_type": event.event_type, "provider_event_id": event.event_id},
        )
        return ServiceResult.success(OUTCOME_IGNORED)

    def _unknown_payment(self, event_type: str, payment_id: str) -> ServiceResult[str]:
        self.get_logger().warning(
            "Webhook for unknown payment ignored",
            extra={"event_type": event_type, "external_payment_id": payment_id},
        )
        return ServiceResult.success(OUTCOME_UNKNOWN_PAYMENT)

    def _illegal_transition(
        self,
        event_type: str,
        error: InvalidStateTransitionError,
    ) -> ServiceResult[str]:
        self.get_logger().warning(
            "Webhook transition rejected",
            extra={"event_type": event_type, **error.details},
        )
        return ServiceResult.success(OUTCOME_ILLEGAL_TRANSITION)
