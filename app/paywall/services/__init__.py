"""
Paywall services.

Usage:
    from paywall.services import PurchaseLedger, RefundIssuer

    handle = PurchaseLedger().create_purchase(product.id, "fan@example.com")
"""

from paywall.services.checkout import CheckoutService, PaymentOutcome
from paywall.services.entitlements import EntitlementIssuer
from paywall.services.fulfillment import FulfillmentResult, PaymentFulfillment
from paywall.services.ledger_service import LedgerService
from paywall.services.notifications import EmailPayerNotifier
from paywall.services.purchase_ledger import PurchaseLedger
from paywall.services.refund_evaluator import RefundRules, evaluate
from paywall.services.refund_issuer import RefundIssuer, expected_duration_ms

__all__ = [
    "CheckoutService",
    "EmailPayerNotifier",
    "EntitlementIssuer",
    "FulfillmentResult",
    "LedgerService",
    "PaymentFulfillment",
    "PaymentOutcome",
    "PurchaseLedger",
    "RefundIssuer",
    "RefundRules",
    "evaluate",
    "expected_duration_ms",
]
