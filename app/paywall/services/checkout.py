"""
On-page card payment for a checkout.

The checkout page tokenizes the card and posts the nonce here; the
purchase is charged through the processor and, when the charge completes,
fulfilled right away (the webhook for the same payment later finds the
purchase already paid and changes nothing).

Usage:
    from paywall.services import CheckoutService

    outcome = CheckoutService().process_payment(purchase_id, source_id="cnon:...")
    if outcome.status == "paid":
        redirect_to_watch(outcome.entitlement_token)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from core.services import BaseService

from paywall.adapters import CreatePaymentParams, IdempotencyKeyGenerator, SquareAdapter
from paywall.exceptions import InvalidStateTransitionError
from paywall.protocols import PaymentProcessor
from paywall.services.fulfillment import PaymentFulfillment
from paywall.services.purchase_ledger import PurchaseLedger
from paywall.state_machines import PurchaseStatus

SQUARE_COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class PaymentOutcome:
    purchase_id: uuid.UUID
    status: str
    entitlement_token: str | None = None


class CheckoutService(BaseService):
    """
    Charges a CREATED purchase.

    Args:
        purchase_ledger: Purchase state owner
        processor: PaymentProcessor (Square by default)
        fulfillment: Completes the purchase once paid
    """

    def __init__(
        self,
        purchase_ledger: PurchaseLedger | None = None,
        processor: PaymentProcessor | None = None,
        fulfillment: PaymentFulfillment | None = None,
    ):
        self.purchase_ledger = purchase_ledger or PurchaseLedger()
        self.processor = processor or SquareAdapter.from_settings()
        self.fulfillment = fulfillment or PaymentFulfillment(
            purchase_ledger=self.purchase_ledger
        )

    def process_payment(self, purchase_id: uuid.UUID, source_id: str) -> PaymentOutcome:
        """
        Charge a purchase with a card nonce.

        The idempotency key is the purchase id, so a double-submitted form
        charges once. The platform fee is collected as Square's app fee.

        Args:
            purchase_id: CREATED purchase to charge
            source_id: Card nonce from the payment form

        Returns:
            PaymentOutcome with status "paid" (and the entitlement token)
            or "failed"

        Raises:
            PurchaseNotFoundError: Unknown purchase
            InvalidStateTransitionError: Purchase is not CREATED
            PaymentProcessorError: Processor rejected or failed the charge
        """
        purchase = self.purchase_ledger.get_purchase(purchase_id)
        if purchase.status != PurchaseStatus.CREATED:
            raise InvalidStateTransitionError(
                f"Cannot pay for a purchase in '{purchase.status}' state",
                details={"purchase_id": str(purchase_id), "current_state": purchase.status},
            )

        result = self.processor.create_payment(
            CreatePaymentParams(
                source_id=source_id,
                amount_cents=purchase.amount_cents,
                currency=purchase.currency,
                idempotency_key=IdempotencyKeyGenerator.for_payment(purchase.id),
                app_fee_cents=purchase.platform_fee_cents,
                reference_id=str(purchase.id),
                buyer_email=purchase.viewer.email,
            ),
            trace_id=str(purchase.id),
        )

        self.purchase_ledger.attach_payment(
            purchase.id,
            external_payment_id=result.id,
            processor_fee_cents=result.processing_fee_cents,
        )

        if result.status != SQUARE_COMPLETED:
            self.get_logger().warning(
                "Square payment not completed; marking purchase failed",
                extra={
                    "purchase_id": str(purchase.id),
                    "external_payment_id": result.id,
                    "payment_status": result.status,
                },
            )
            self.purchase_ledger.mark_failed(purchase.id)
            return PaymentOutcome(purchase_id=purchase.id, status=PurchaseStatus.FAILED.value)

        fulfilled = self.fulfillment.fulfill(
            purchase.id,
            external_payment_id=result.id,
            payer_external_id=result.customer_id,
            processor_fee_cents=result.processing_fee_cents,
        )
        return PaymentOutcome(
            purchase_id=purchase.id,
            status=PurchaseStatus.PAID.value,
            entitlement_token=fulfilled.entitlement.token_id,
        )
