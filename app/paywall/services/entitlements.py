"""
Entitlement issuance.

An Entitlement is issued exactly once per paid Purchase. The existence
check below is only a fast path: concurrent webhook deliveries can both
pass it, and the one-to-one column then lets exactly one insert win. The
loser's IntegrityError means "already issued" and returns the winner's row.
"""

from __future__ import annotations

import secrets
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.services import BaseService

from paywall.exceptions import InvalidStateTransitionError
from paywall.models import Entitlement, Purchase
from paywall.state_machines import PurchaseStatus


def generate_token_id() -> str:
    """Opaque, unguessable entitlement token (64 hex chars)."""
    return secrets.token_hex(32)


class EntitlementIssuer(BaseService):
    """
    Issues the one Entitlement of a paid Purchase.

    Args:
        default_validity_hours: Window length when the product has no end
            time (defaults to settings.ENTITLEMENT_DEFAULT_VALIDITY_HOURS)
    """

    def __init__(self, default_validity_hours: int | None = None):
        if default_validity_hours is None:
            default_validity_hours = settings.ENTITLEMENT_DEFAULT_VALIDITY_HOURS
        self.default_validity = timedelta(hours=default_validity_hours)

    def issue_entitlement(self, purchase: Purchase) -> tuple[Entitlement, bool]:
        """
        Return the purchase's entitlement, creating it on first call.

        Validity runs from now to the product's end time, or now plus the
        default window when the product has none.

        Args:
            purchase: A PAID purchase

        Returns:
            Tuple of (entitlement, created)

        Raises:
            InvalidStateTransitionError: Purchase is not PAID
        """
        existing = Entitlement.objects.filter(purchase=purchase).first()
        if existing is not None:
            return existing, False

        if purchase.status != PurchaseStatus.PAID:
            raise InvalidStateTransitionError(
                f"Cannot issue an entitlement for a purchase in '{purchase.status}' state",
                details={"purchase_id": str(purchase.id), "current_state": purchase.status},
            )

        now = timezone.now()
        valid_to = purchase.product.ends_at or now + self.default_validity

        try:
            with transaction.atomic():
                entitlement = Entitlement.objects.create(
                    purchase=purchase,
                    token_id=generate_token_id(),
                    valid_from=now,
                    valid_to=valid_to,
                )
        except IntegrityError:
            self.get_logger().info(
                "Entitlement already issued by a concurrent request",
                extra={"purchase_id": str(purchase.id)},
            )
            return Entitlement.objects.get(purchase=purchase), False

        self.get_logger().info(
            "Entitlement issued",
            extra={
                "purchase_id": str(purchase.id),
                "entitlement_id": str(entitlement.id),
                "valid_to": valid_to.isoformat(),
            },
        )
        return entitlement, True
