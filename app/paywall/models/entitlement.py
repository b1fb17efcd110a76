"""
Entitlement model: the right to watch a purchased product.

Exactly one Entitlement exists per paid Purchase. The one-to-one column is
the uniqueness guard: when two deliveries of the same payment webhook race,
the database lets one insert win and the other sees an IntegrityError.
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from paywall.state_machines import EntitlementStatus


class Entitlement(UUIDPrimaryKeyMixin, BaseModel):
    """
    Time-bounded access to a purchased product.

    Fields:
        purchase: The paid Purchase (one-to-one)
        token_id: Opaque token used in watch links and to correlate
            playback sessions
        valid_from / valid_to: Validity window
        status: ACTIVE or REVOKED
    """

    purchase = models.OneToOneField(
        "paywall.Purchase",
        on_delete=models.PROTECT,
        related_name="entitlement",
        help_text="Purchase this entitlement was issued for",
    )

    token_id = models.CharField(
        max_length=128,
        unique=True,
        help_text="Opaque access token (watch links, playback sessions)",
    )

    valid_from = models.DateTimeField(
        help_text="Start of the validity window",
    )

    valid_to = models.DateTimeField(
        help_text="End of the validity window",
    )

    status = models.CharField(
        max_length=20,
        choices=EntitlementStatus.choices,
        default=EntitlementStatus.ACTIVE,
        db_index=True,
        help_text="Whether the entitlement can be used",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Entitlement"
        verbose_name_plural = "Entitlements"

    def __str__(self) -> str:
        return f"Entitlement({self.purchase_id}, {self.status})"

    def is_usable(self, at=None) -> bool:
        """Check if the entitlement is active and inside its validity window."""
        at = at or timezone.now()
        return (
            self.status == EntitlementStatus.ACTIVE
            and self.valid_from <= at <= self.valid_to
        )
