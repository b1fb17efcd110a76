"""
Marketplace ledger: signed money movements booked to an owner account.

Entries are append-only. Each carries a unique idempotency key built from
the purchase or refund id and the entry type, so recording the same sale
twice inserts nothing the second time.

Usage:
    from paywall.models import LedgerEntry

    balance = LedgerEntry.objects.balance_for(owner)
"""

from __future__ import annotations

from django.db import models
from django.db.models import Sum, Value
from django.db.models.functions import Coalesce

from core.model_mixins import UUIDPrimaryKeyMixin

from paywall.state_machines import LedgerEntryType


class LedgerEntryQuerySet(models.QuerySet):
    def balance_for(self, owner) -> int:
        """Sum of all signed entries for an owner account, in cents."""
        return self.filter(owner=owner).aggregate(
            balance=Coalesce(
                Sum("amount_cents"), Value(0), output_field=models.BigIntegerField()
            )
        )["balance"]


class LedgerEntry(UUIDPrimaryKeyMixin, models.Model):
    """
    One signed money movement for an owner.

    Fields:
        created_at: Timestamp when entry was recorded
        owner: Owner account the movement belongs to
        purchase: Purchase that caused it
        refund: Refund that caused it (refund-side entries only)
        entry_type: Category (see LedgerEntryType)
        amount_cents: Signed amount (credits positive, debits negative)
        currency: ISO 4217 currency code
        description: Human-readable description
        idempotency_key: Unique key to prevent duplicate entries
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this entry was recorded",
    )

    owner = models.ForeignKey(
        "catalog.OwnerAccount",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        help_text="Owner account this entry is booked to",
    )

    purchase = models.ForeignKey(
        "paywall.Purchase",
        on_delete=models.PROTECT,
        related_name="ledger_entries",
        help_text="Purchase this entry belongs to",
    )

    refund = models.ForeignKey(
        "paywall.Refund",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
        help_text="Refund this entry belongs to (refund entries only)",
    )

    entry_type = models.CharField(
        max_length=50,
        choices=LedgerEntryType.choices,
        help_text="Category of this entry",
    )

    amount_cents = models.BigIntegerField(
        help_text="Signed amount in cents (credits positive, debits negative)",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    description = models.TextField(
        null=True,
        blank=True,
        help_text="Human-readable description of this entry",
    )

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique key to prevent duplicate entries",
    )

    objects = LedgerEntryQuerySet.as_manager()

    class Meta:
        ordering = ["created_at"]
        verbose_name = "Ledger Entry"
        verbose_name_plural = "Ledger Entries"
        indexes = [
            models.Index(fields=["owner", "created_at"], name="ledger_owner_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.get_entry_type_display()}: {self.amount_cents} cents"
