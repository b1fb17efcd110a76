"""
Purchase model: the financial record of one viewer buying one product.

The Purchase owns its financial truth: the gross amount and how it splits
into platform fee, processor fee and owner net. Its status is a django-fsm
state machine driven by checkout, provider webhooks and refunds.

Usage:
    from paywall.models import Purchase
    from paywall.state_machines import PurchaseStatus

    purchase = Purchase.objects.create(
        product=product,
        viewer=viewer,
        amount_cents=split.gross_cents,
        platform_fee_cents=split.platform_fee_cents,
        processor_fee_cents=split.processor_fee_cents,
        owner_net_cents=split.owner_net_cents,
    )

    # Provider confirmed the payment
    purchase.pay(external_payment_id="sq_payment_123")
    purchase.save()
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import OptimisticVersionMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel

from paywall.state_machines import PurchaseStatus


class Purchase(UUIDPrimaryKeyMixin, OptimisticVersionMixin, BaseModel):
    """
    One viewer's purchase of one product.

    State Flow:
        CREATED -> PAID -> REFUNDED / PARTIALLY_REFUNDED
        CREATED -> FAILED

    Fields:
        product: Product bought
        viewer: Payer
        amount_cents: Gross amount charged
        platform_fee_cents / processor_fee_cents / owner_net_cents: Fee split
        status: Current FSM state
        external_payment_id: Processor payment id, unique once assigned
        payer_external_id: Processor customer id reported with the payment
        paid_at / failed_at / refunded_at: Set by the matching transition

    Constraints:
        - owner_net_cents = amount_cents - platform_fee_cents - processor_fee_cents
        - external_payment_id unique when present (NULLs do not collide)
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    product = models.ForeignKey(
        "catalog.Product",
        on_delete=models.PROTECT,
        related_name="purchases",
        help_text="Product being purchased",
    )

    viewer = models.ForeignKey(
        "catalog.Viewer",
        on_delete=models.PROTECT,
        related_name="purchases",
        help_text="Viewer paying for the product",
    )

    # ==========================================================================
    # Amount & Fee Split
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Gross amount in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    platform_fee_cents = models.BigIntegerField(
        default=0,
        help_text="Marketplace share of the gross amount",
    )

    processor_fee_cents = models.BigIntegerField(
        default=0,
        help_text="Card processor share (estimated at checkout, actual once paid)",
    )

    owner_net_cents = models.BigIntegerField(
        default=0,
        help_text="Amount owed to the product owner (may be negative for tiny amounts)",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PurchaseStatus.CREATED,
        choices=PurchaseStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the purchase (managed by FSM)",
    )

    # ==========================================================================
    # Processor References
    # ==========================================================================

    external_payment_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Square payment ID, unique once assigned",
    )

    payer_external_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Square customer ID reported with the payment",
    )

    # ==========================================================================
    # Timestamps
    # ==========================================================================

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment was confirmed",
    )

    failed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment failed or was canceled",
    )

    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the purchase was (partially) refunded",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Purchase"
        verbose_name_plural = "Purchases"
        indexes = [
            models.Index(fields=["viewer", "status"], name="purchase_viewer_status_idx"),
            models.Index(fields=["product", "status"], name="purchase_product_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(
                    owner_net_cents=F("amount_cents")
                    - F("platform_fee_cents")
                    - F("processor_fee_cents")
                ),
                name="purchase_fee_split_balances",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency}"
        return f"Purchase({self.id}, {self.status}, {amount_display})"

    # ==========================================================================
    # Fee Helpers
    # ==========================================================================

    def apply_actual_processor_fee(self, processor_fee_cents: int) -> None:
        """
        Replace the estimated processor fee with the amount the processor charged.

        Owner net is recomputed so the split keeps balancing.
        Does not save - caller must save after calling.
        """
        self.processor_fee_cents = processor_fee_cents
        self.owner_net_cents = (
            self.amount_cents - self.platform_fee_cents - self.processor_fee_cents
        )

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PurchaseStatus.CREATED,
        target=PurchaseStatus.PAID,
    )
    def pay(self, external_payment_id: str, payer_external_id: str | None = None):
        """
        Record a confirmed payment.

        Transition: CREATED -> PAID

        Args:
            external_payment_id: Processor payment id
            payer_external_id: Processor customer id, if reported
        """
        self.external_payment_id = external_payment_id
        if payer_external_id:
            self.payer_external_id = payer_external_id
        self.paid_at = timezone.now()

    @transition(
        field=status,
        source=PurchaseStatus.CREATED,
        target=PurchaseStatus.FAILED,
    )
    def fail(self):
        """
        Record a failed or canceled payment.

        Transition: CREATED -> FAILED
        """
        self.failed_at = timezone.now()

    @transition(
        field=status,
        source=PurchaseStatus.PAID,
        target=PurchaseStatus.REFUNDED,
    )
    def refund_full(self):
        """
        Record a refund of the whole gross amount.

        Transition: PAID -> REFUNDED
        """
        self.refunded_at = timezone.now()

    @transition(
        field=status,
        source=PurchaseStatus.PAID,
        target=PurchaseStatus.PARTIALLY_REFUNDED,
    )
    def refund_partial(self):
        """
        Record a refund of part of the gross amount.

        Transition: PAID -> PARTIALLY_REFUNDED
        """
        self.refunded_at = timezone.now()
