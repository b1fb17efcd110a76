"""
Catalog models: owners, products and viewers.

Usage:
    from catalog.models import OwnerAccount, Product, ProductState, Viewer

    owner = OwnerAccount.objects.create(name="Storm FC", contact_email="club@example.com")
    product = Product.objects.create(
        owner=owner,
        title="Storm FC vs. United",
        price_cents=799,
        state=ProductState.ACTIVE,
    )

    if product.is_purchasable:
        ...
"""

from __future__ import annotations

from datetime import timedelta

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ProductState(models.TextChoices):
    """
    Lifecycle of a product.

    State Flow:
        DRAFT -> ACTIVE -> LIVE -> ENDED
        (any non-terminal) -> CANCELLED

    Only ACTIVE and LIVE products can be bought.
    """

    DRAFT = "draft", "Draft"
    ACTIVE = "active", "Active"
    LIVE = "live", "Live"
    ENDED = "ended", "Ended"
    CANCELLED = "cancelled", "Cancelled"


PURCHASABLE_STATES = frozenset({ProductState.ACTIVE, ProductState.LIVE})


class OwnerAccount(UUIDPrimaryKeyMixin, BaseModel):
    """
    A marketplace seller.

    Ledger entries for every sale are booked against the owner account,
    so the owner's balance is the sum of its entries.

    Fields:
        name: Display name
        contact_email: Where payout and sales notices go
        square_merchant_id: Merchant id once the owner connected Square
    """

    name = models.CharField(
        max_length=200,
        help_text="Display name of the owner (club, school, organizer)",
    )

    contact_email = models.EmailField(
        help_text="Contact address for the owner",
    )

    square_merchant_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Square merchant ID after OAuth connection",
    )

    class Meta:
        ordering = ["name"]
        verbose_name = "Owner Account"
        verbose_name_plural = "Owner Accounts"

    def __str__(self) -> str:
        return self.name


class Product(UUIDPrimaryKeyMixin, BaseModel):
    """
    A priced, scheduled stream.

    Fields:
        owner: Seller receiving the owner net
        title: Shown at checkout, on receipts and refund notices
        price_cents: Gross price in minor units
        currency: ISO 4217 code (upper case, as the processor expects)
        state: Lifecycle state (see ProductState)
        starts_at / ends_at: Scheduled window, used for entitlement
            validity and expected duration when known
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    owner = models.ForeignKey(
        OwnerAccount,
        on_delete=models.PROTECT,
        related_name="products",
        help_text="Owner account that sells this product",
    )

    # ==========================================================================
    # Description & Price
    # ==========================================================================

    title = models.CharField(
        max_length=255,
        help_text="Product title shown to viewers",
    )

    price_cents = models.PositiveBigIntegerField(
        help_text="Gross price in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="USD",
        help_text="ISO 4217 currency code",
    )

    # ==========================================================================
    # Lifecycle & Schedule
    # ==========================================================================

    state = models.CharField(
        max_length=20,
        choices=ProductState.choices,
        default=ProductState.DRAFT,
        db_index=True,
        help_text="Lifecycle state; only active and live products are purchasable",
    )

    starts_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Scheduled start time",
    )

    ends_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Scheduled end time; entitlements expire here when known",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Product"
        verbose_name_plural = "Products"
        indexes = [
            models.Index(fields=["owner", "state"], name="product_owner_state_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.state})"

    @property
    def is_purchasable(self) -> bool:
        """Check if viewers can currently buy this product."""
        return self.state in PURCHASABLE_STATES

    @property
    def scheduled_duration(self) -> timedelta | None:
        """Length of the scheduled window, or None if it is not fully known."""
        if self.starts_at and self.ends_at:
            return self.ends_at - self.starts_at
        return None


class Viewer(UUIDPrimaryKeyMixin, BaseModel):
    """
    The payer identity.

    Viewers are resolved by email at checkout; the address is stored
    lower-cased so lookups are case-insensitive.

    Fields:
        email: Unique, lower-cased
        phone_e164: Optional phone for SMS notices
        square_customer_id: Processor customer id reported by webhooks
    """

    email = models.EmailField(
        unique=True,
        help_text="Viewer email (stored lower-case)",
    )

    phone_e164 = models.CharField(
        max_length=20,
        null=True,
        blank=True,
        help_text="Phone number in E.164 format",
    )

    square_customer_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Square customer ID for this viewer",
    )

    class Meta:
        ordering = ["email"]
        verbose_name = "Viewer"
        verbose_name_plural = "Viewers"

    def __str__(self) -> str:
        return self.email
