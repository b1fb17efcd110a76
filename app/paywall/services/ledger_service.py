"""
Marketplace ledger bookings.

Every sale books three signed entries to the product owner's account:

    charge          +gross
    platform_fee    -platform fee
    processor_fee   -processor fee

so the owner's balance grows by exactly the owner net. A refund books
``refund -amount`` and gives back the matching share of the platform fee
(the whole fee on a full refund). Processor fees are not returned by the
processor and are never reversed.

Entries carry idempotency keys derived from the purchase or refund id, so
recording the same sale or refund twice adds nothing.

Usage:
    from paywall.services import LedgerService

    ledger = LedgerService()
    ledger.record_purchase(purchase)
    balance = ledger.owner_balance(product.owner)
"""

from __future__ import annotations

from core.services import BaseService

from paywall.models import LedgerEntry, Purchase, Refund
from paywall.state_machines import LedgerEntryType


def platform_fee_reversal(purchase: Purchase, refund_amount_cents: int) -> int:
    """
    Platform fee given back for a refund.

    Proportional to the refunded share of the gross, floored; the whole
    fee when the refund covers the gross.
    """
    if purchase.amount_cents <= 0:
        return 0
    if refund_amount_cents >= purchase.amount_cents:
        return purchase.platform_fee_cents
    return purchase.platform_fee_cents * refund_amount_cents // purchase.amount_cents


class LedgerService(BaseService):
    """Books purchase and refund money movements to owner accounts."""

    def record_purchase(self, purchase: Purchase) -> list[LedgerEntry]:
        """
        Book a paid purchase.

        Uses the purchase's current processor fee, so call it after the
        actual fee has been applied.

        Returns:
            The purchase's sale entries (existing ones on a repeat call)
        """
        entries = self._book(
            purchase,
            key_prefix=f"purchase:{purchase.id}",
            rows=[
                (LedgerEntryType.CHARGE, purchase.amount_cents, "Charge"),
                (LedgerEntryType.PLATFORM_FEE, -purchase.platform_fee_cents, "Platform fee"),
                (LedgerEntryType.PROCESSOR_FEE, -purchase.processor_fee_cents, "Processor fee"),
            ],
        )
        self.get_logger().info(
            "Purchase booked to ledger",
            extra={
                "purchase_id": str(purchase.id),
                "owner_id": str(purchase.product.owner_id),
                "owner_net_cents": purchase.owner_net_cents,
            },
        )
        return entries

    def record_refund(self, refund: Refund) -> list[LedgerEntry]:
        """
        Book a refund issued by us: the refunded amount and the platform
        fee reversal.

        Returns:
            The refund's entries (existing ones on a repeat call)
        """
        purchase = refund.purchase
        entries = self._book(
            purchase,
            key_prefix=f"refund:{refund.id}",
            rows=self._refund_rows(purchase, refund.amount_cents),
            refund=refund,
        )
        self.get_logger().info(
            "Refund booked to ledger",
            extra={
                "refund_id": str(refund.id),
                "purchase_id": str(purchase.id),
                "amount_cents": refund.amount_cents,
            },
        )
        return entries

    def record_provider_refund(
        self,
        purchase: Purchase,
        amount_cents: int,
        external_refund_id: str,
    ) -> list[LedgerEntry]:
        """
        Book a refund made directly at the processor (dashboard refunds).

        There is no Refund row for these; entries are keyed by the
        processor's refund id instead.
        """
        entries = self._book(
            purchase,
            key_prefix=f"provider-refund:{external_refund_id}",
            rows=self._refund_rows(purchase, amount_cents),
        )
        self.get_logger().info(
            "Provider refund booked to ledger",
            extra={
                "purchase_id": str(purchase.id),
                "external_refund_id": external_refund_id,
                "amount_cents": amount_cents,
            },
        )
        return entries

    def owner_balance(self, owner) -> int:
        """Current balance of an owner account, in cents."""
        return LedgerEntry.objects.balance_for(owner)

    def _refund_rows(self, purchase: Purchase, amount_cents: int) -> list[tuple[str, int, str]]:
        return [
            (LedgerEntryType.REFUND, -amount_cents, "Refund"),
            (
                LedgerEntryType.PLATFORM_FEE,
                platform_fee_reversal(purchase, amount_cents),
                "Platform fee reversal",
            ),
        ]

    def _book(
        self,
        purchase: Purchase,
        key_prefix: str,
        rows: list[tuple[str, int, str]],
        refund: Refund | None = None,
    ) -> list[LedgerEntry]:
        """Insert each non-zero row once, keyed by prefix and entry type."""
        entries = []
        with self.atomic():
            for entry_type, amount_cents, label in rows:
                if amount_cents == 0:
                    continue
                entry, _ = LedgerEntry.objects.get_or_create(
                    idempotency_key=f"{key_prefix}:{entry_type}",
                    defaults={
                        "owner_id": purchase.product.owner_id,
                        "purchase": purchase,
                        "refund": refund,
                        "entry_type": entry_type,
                        "amount_cents": amount_cents,
                        "currency": purchase.currency,
                        "description": f"{label} ({key_prefix})",
                    },
                )
                entries.append(entry)
        return entries
