"""
Paywall domain models.

- Purchase: One viewer buying one product, with its fee split and FSM status
- Entitlement: Access issued once per paid purchase
- Refund: Money returned to the payer (at most one per purchase)
- WebhookEvent: Provider webhook deliveries for idempotent processing
- LedgerEntry: Signed marketplace money movements per owner
"""

from paywall.models.entitlement import Entitlement
from paywall.models.ledger_entry import LedgerEntry
from paywall.models.purchase import Purchase
from paywall.models.refund import Refund
from paywall.models.webhook_event import WebhookEvent

__all__ = [
    "Entitlement",
    "LedgerEntry",
    "Purchase",
    "Refund",
    "WebhookEvent",
]
