"""
Purchase ledger: checkout creation and purchase state transitions.

This module provides the PurchaseLedger service which owns every change to
a Purchase's status. Transitions run under a row lock
(``select_for_update``) and go through the django-fsm transitions on the
model, so an illegal move (e.g. failing an already paid purchase) is
rejected instead of overwriting state.

Transitions:
    created -> paid          mark_paid (idempotent for the same payment id)
    created -> failed        mark_failed
    paid -> refunded         mark_refunded(is_full=True)
    paid -> partially_refunded  mark_refunded(is_full=False)

Usage:
    from paywall.services import PurchaseLedger

    ledger = PurchaseLedger()
    handle = ledger.create_purchase(
        product_id=product.id,
        payer_email="fan@example.com",
    )

    # Later, from the webhook processor
    ledger.mark_paid(handle.purchase_id, external_payment_id="sq_payment_123")
"""

from __future__ import annotations

import uuid
from urllib.parse import quote

from django.conf import settings

from django_fsm import TransitionNotAllowed

from catalog.models import Product, Viewer
from core.exceptions import NotFoundError
from core.services import BaseService

from paywall.exceptions import InvalidStateTransitionError, PurchaseNotFoundError
from paywall.fees import FeeCalculator
from paywall.models import Purchase
from paywall.state_machines import PurchaseStatus
from paywall.types import CheckoutHandle


class PurchaseLedger(BaseService):
    """
    Owner of Purchase state.

    Args:
        fee_calculator: Splits the gross at checkout (defaults to settings)
        app_url: Base URL for checkout links (defaults to settings.APP_URL)
    """

    def __init__(
        self,
        fee_calculator: FeeCalculator | None = None,
        app_url: str | None = None,
    ):
        self.fee_calculator = fee_calculator or FeeCalculator.from_settings()
        self.app_url = (app_url or settings.APP_URL).rstrip("/")

    # =========================================================================
    # Checkout
    # =========================================================================

    def create_purchase(
        self,
        product_id: uuid.UUID,
        payer_email: str,
        payer_phone: str | None = None,
        return_url: str | None = None,
    ) -> CheckoutHandle:
        """
        Create a purchase in CREATED state and return its checkout handle.

        The viewer is resolved by email (case-insensitive) and created when
        missing. The fee split is computed now from the product price.

        Args:
            product_id: Product being bought
            payer_email: Payer email
            payer_phone: Optional E.164 phone, stored if the viewer has none
            return_url: Where the checkout page sends the payer afterwards

        Returns:
            CheckoutHandle with the purchase id and checkout URL

        Raises:
            NotFoundError: Product does not exist or is not purchasable
        """
        try:
            product = Product.objects.get(id=product_id)
        except Product.DoesNotExist as e:
            raise NotFoundError(
                "Game not found",
                details={"product_id": str(product_id)},
            ) from e

        if not product.is_purchasable:
            raise NotFoundError(
                "Game not available for purchase",
                details={"product_id": str(product_id), "state": product.state},
            )

        split = self.fee_calculator.split(product.price_cents)

        with self.atomic():
            viewer = self._resolve_viewer(payer_email, payer_phone)
            purchase = Purchase.objects.create(
                product=product,
                viewer=viewer,
                amount_cents=split.gross_cents,
                currency=product.currency,
                platform_fee_cents=split.platform_fee_cents,
                processor_fee_cents=split.processor_fee_cents,
                owner_net_cents=split.owner_net_cents,
            )

        self.get_logger().info(
            "Purchase created",
            extra={
                "purchase_id": str(purchase.id),
                "product_id": str(product.id),
                "amount_cents": purchase.amount_cents,
                "platform_fee_cents": purchase.platform_fee_cents,
                "processor_fee_cents": purchase.processor_fee_cents,
            },
        )

        return CheckoutHandle(
            purchase_id=purchase.id,
            checkout_url=self._checkout_url(purchase.id, viewer.email, return_url),
        )

    def _resolve_viewer(self, email: str, phone: str | None) -> Viewer:
        viewer, _ = Viewer.objects.get_or_create(email=email.strip().lower())
        if phone and not viewer.phone_e164:
            viewer.phone_e164 = phone
            viewer.save(update_fields=["phone_e164", "updated_at"])
        return viewer

    def _checkout_url(self, purchase_id: uuid.UUID, email: str, return_url: str | None) -> str:
        final_return_url = return_url or f"{self.app_url}/checkout/{purchase_id}/success"
        return (
            f"{self.app_url}/checkout/{purchase_id}"
            f"?square_checkout=true&email={quote(email, safe='')}"
            f"&returnUrl={quote(final_return_url, safe='')}"
        )

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_purchase(self, purchase_id: uuid.UUID) -> Purchase:
        """
        Load a purchase with its product and viewer.

        Raises:
            PurchaseNotFoundError: No purchase with this id
        """
        try:
            return Purchase.objects.select_related("product", "viewer").get(id=purchase_id)
        except Purchase.DoesNotExist as e:
            raise PurchaseNotFoundError(
                "Purchase not found",
                details={"purchase_id": str(purchase_id)},
            ) from e

    def find_by_external_payment_id(self, external_payment_id: str) -> Purchase | None:
        """Purchase charged by a processor payment, or None if it is not ours."""
        return (
            Purchase.objects.select_related("product", "viewer")
            .filter(external_payment_id=external_payment_id)
            .first()
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def attach_payment(
        self,
        purchase_id: uuid.UUID,
        external_payment_id: str,
        processor_fee_cents: int | None = None,
    ) -> Purchase:
        """
        Store the processor payment id (and actual fee) on a CREATED purchase.

        Lets webhooks for this payment find the purchase before it is paid.
        """
        with self.atomic():
            purchase = self.lock_for_update(purchase_id)
            if purchase.status != PurchaseStatus.CREATED:
                raise InvalidStateTransitionError(
                    f"Cannot attach a payment to a purchase in '{purchase.status}' state",
                    details={"purchase_id": str(purchase_id), "current_state": purchase.status},
                )
            purchase.external_payment_id = external_payment_id
            if processor_fee_cents is not None:
                purchase.apply_actual_processor_fee(processor_fee_cents)
            purchase.save()
        return purchase

    def mark_paid(
        self,
        purchase_id: uuid.UUID,
        external_payment_id: str,
        payer_external_id: str | None = None,
        processor_fee_cents: int | None = None,
    ) -> Purchase:
        """
        Record a confirmed payment.

        Calling this again with the same external payment id on a PAID
        purchase changes nothing.

        Args:
            purchase_id: Purchase to update
            external_payment_id: Processor payment id
            payer_external_id: Processor customer id, copied to the viewer
                when it has none
            processor_fee_cents: Actual processor fee, replacing the estimate

        Raises:
            PurchaseNotFoundError: Unknown purchase
            InvalidStateTransitionError: Purchase is not CREATED, or is PAID
                with a different payment id
        """
        with self.atomic():
            purchase = self.lock_for_update(purchase_id)

            if purchase.status == PurchaseStatus.PAID:
                if purchase.external_payment_id == external_payment_id:
                    return purchase
                raise InvalidStateTransitionError(
                    "Purchase is already paid by a different payment",
                    details={
                        "purchase_id": str(purchase_id),
                        "current_state": purchase.status,
                        "external_payment_id": external_payment_id,
                    },
                )

            if processor_fee_cents is not None:
                purchase.apply_actual_processor_fee(processor_fee_cents)
            self._apply(purchase, "pay", external_payment_id, payer_external_id)
            purchase.save()

            viewer = purchase.viewer
            if payer_external_id and not viewer.square_customer_id:
                viewer.square_customer_id = payer_external_id
                viewer.save(update_fields=["square_customer_id", "updated_at"])

        self.get_logger().info(
            "Purchase paid",
            extra={
                "purchase_id": str(purchase.id),
                "external_payment_id": external_payment_id,
                "processor_fee_cents": purchase.processor_fee_cents,
            },
        )
        return purchase

    def mark_failed(self, purchase_id: uuid.UUID) -> Purchase:
        """
        Record a failed or canceled payment.

        Raises:
            PurchaseNotFoundError: Unknown purchase
            InvalidStateTransitionError: Purchase is not CREATED
        """
        with self.atomic():
            purchase = self.lock_for_update(purchase_id)
            self._apply(purchase, "fail")
            purchase.save()

        self.get_logger().info(
            "Purchase failed",
            extra={"purchase_id": str(purchase.id)},
        )
        return purchase

    def mark_refunded(self, purchase_id: uuid.UUID, is_full: bool) -> Purchase:
        """
        Record a refund.

        Args:
            purchase_id: Purchase to update
            is_full: True moves to REFUNDED, False to PARTIALLY_REFUNDED

        Raises:
            PurchaseNotFoundError: Unknown purchase
            InvalidStateTransitionError: Purchase is not PAID
        """
        with self.atomic():
            purchase = self.lock_for_update(purchase_id)
            self._apply(purchase, "refund_full" if is_full else "refund_partial")
            purchase.save()

        self.get_logger().info(
            "Purchase refunded",
            extra={
                "purchase_id": str(purchase.id),
                "is_full": is_full,
                "status": purchase.status,
            },
        )
        return purchase

    # =========================================================================
    # Helpers
    # =========================================================================

    def lock_for_update(self, purchase_id: uuid.UUID) -> Purchase:
        try:
            return (
                Purchase.objects.select_for_update()
                .select_related("product", "viewer")
                .get(id=purchase_id)
            )
        except Purchase.DoesNotExist as e:
            raise PurchaseNotFoundError(
                "Purchase not found",
                details={"purchase_id": str(purchase_id)},
            ) from e

    def _apply(self, purchase: Purchase, action: str, *args) -> None:
        """Run a django-fsm transition, translating rejection to a 400."""
        try:
            getattr(purchase, action)(*args)
        except TransitionNotAllowed as e:
            self.get_logger().warning(
                "Illegal purchase transition rejected",
                extra={
                    "purchase_id": str(purchase.id),
                    "current_state": purchase.status,
                    "action": action,
                },
            )
            raise InvalidStateTransitionError(
                f"Cannot {action} purchase in '{purchase.status}' state",
                details={
                    "purchase_id": str(purchase.id),
                    "current_state": purchase.status,
                    "action": action,
                },
            ) from e
