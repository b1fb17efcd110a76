"""
State machine enums for paywall models.
"""

from paywall.state_machines.states import (
    EntitlementStatus,
    LedgerEntryType,
    PurchaseStatus,
    WebhookEventStatus,
)

__all__ = [
    "EntitlementStatus",
    "LedgerEntryType",
    "PurchaseStatus",
    "WebhookEventStatus",
]
