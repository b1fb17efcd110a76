"""
State enums for paywall models.

These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Purchase States:
    created → paid → refunded / partially_refunded
    created → failed

Entitlement Status:
    active → revoked

WebhookEvent Status:
    pending → processing → processed
    pending → processing → failed → processing (replay)
"""

from django.db import models


class PurchaseStatus(models.TextChoices):
    """
    States for the Purchase lifecycle.

    Terminal states: FAILED, REFUNDED, PARTIALLY_REFUNDED

    State Flow:
        CREATED → PAID → REFUNDED
        CREATED → PAID → PARTIALLY_REFUNDED
        CREATED → FAILED

    There is no way back to PAID from FAILED or either refunded state.
    """

    CREATED = "created", "Created"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially Refunded"


class EntitlementStatus(models.TextChoices):
    """Status of an entitlement to watch a purchased product."""

    ACTIVE = "active", "Active"
    REVOKED = "revoked", "Revoked"


class WebhookEventStatus(models.TextChoices):
    """
    Processing status of a stored provider webhook event.

    PENDING: Stored, not yet handled
    PROCESSING: Handler running
    PROCESSED: Handled (including deliberately ignored events)
    FAILED: Handler raised; eligible for replay
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class LedgerEntryType(models.TextChoices):
    """
    Categories of marketplace money movement booked to an owner.

    CHARGE: Gross amount collected (+)
    PLATFORM_FEE: Marketplace share (-), or its reversal on refund (+)
    PROCESSOR_FEE: Card processor share (-), never reversed
    REFUND: Money returned to the payer (-)
    """

    CHARGE = "charge", "Charge"
    PLATFORM_FEE = "platform_fee", "Platform Fee"
    PROCESSOR_FEE = "processor_fee", "Processor Fee"
    REFUND = "refund", "Refund"
