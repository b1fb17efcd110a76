"""
Payment fulfillment: everything that follows a confirmed payment.

Shared by the webhook processor and the on-page card flow, so a payment
confirmed by either path ends in the same state:

    1. Purchase moved to PAID (no-op when already paid by this payment)
    2. Sale booked to the marketplace ledger (once)
    3. Entitlement issued (once)
    4. Receipt emailed, only when this call issued the entitlement

Steps 1-3 commit together. The receipt is best-effort and sent after
commit.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from core.services import BaseService

from paywall.models import Entitlement, Purchase
from paywall.protocols import PayerNotifier
from paywall.services.entitlements import EntitlementIssuer
from paywall.services.ledger_service import LedgerService
from paywall.services.notifications import EmailPayerNotifier
from paywall.services.purchase_ledger import PurchaseLedger


@dataclass
class FulfillmentResult:
    """
    Attributes:
        purchase: The PAID purchase
        entitlement: Its entitlement
        newly_issued: True when this call created the entitlement
    """

    purchase: Purchase
    entitlement: Entitlement
    newly_issued: bool


class PaymentFulfillment(BaseService):
    """
    Completes a paid purchase.

    Args:
        purchase_ledger: Purchase state owner
        entitlement_issuer: Issues the entitlement
        ledger_service: Books the sale
        notifier: Sends the receipt
    """

    def __init__(
        self,
        purchase_ledger: PurchaseLedger | None = None,
        entitlement_issuer: EntitlementIssuer | None = None,
        ledger_service: LedgerService | None = None,
        notifier: PayerNotifier | None = None,
    ):
        self.purchase_ledger = purchase_ledger or PurchaseLedger()
        self.entitlement_issuer = entitlement_issuer or EntitlementIssuer()
        self.ledger_service = ledger_service or LedgerService()
        self.notifier = notifier or EmailPayerNotifier()

    def fulfill(
        self,
        purchase_id: uuid.UUID,
        external_payment_id: str,
        payer_external_id: str | None = None,
        processor_fee_cents: int | None = None,
    ) -> FulfillmentResult:
        """
        Mark paid, book the sale and issue the entitlement.

        Safe to call any number of times for the same payment.

        Raises:
            PurchaseNotFoundError: Unknown purchase
            InvalidStateTransitionError: Purchase cannot become PAID
        """
        with self.atomic():
            purchase = self.purchase_ledger.mark_paid(
                purchase_id,
                external_payment_id=external_payment_id,
                payer_external_id=payer_external_id,
                processor_fee_cents=processor_fee_cents,
            )
            self.ledger_service.record_purchase(purchase)
            entitlement, created = self.entitlement_issuer.issue_entitlement(purchase)

        if created:
            self._send_receipt(purchase, entitlement)

        return FulfillmentResult(
            purchase=purchase,
            entitlement=entitlement,
            newly_issued=created,
        )

    def _send_receipt(self, purchase: Purchase, entitlement: Entitlement) -> None:
        try:
            self.notifier.send_purchase_receipt(purchase, entitlement)
        except Exception:
            self.get_logger().warning(
                "Purchase receipt failed",
                extra={"purchase_id": str(purchase.id)},
                exc_info=True,
            )
