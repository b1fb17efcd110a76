import uuid

import django.db.models.deletion
import django_fsm
from django.db import migrations, models


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def _uuid_pk():
    return (
        "id",
        models.UUIDField(
            default=uuid.uuid4,
            editable=False,
            help_text="Unique identifier for this record",
            primary_key=True,
            serialize=False,
        ),
    )


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Purchase",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Optimistic locking version, incremented on each update",
                    ),
                ),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Gross amount in smallest currency unit (e.g., cents)"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="USD", help_text="ISO 4217 currency code", max_length=3
                    ),
                ),
                (
                    "platform_fee_cents",
                    models.BigIntegerField(
                        default=0, help_text="Marketplace share of the gross amount"
                    ),
                ),
                (
                    "processor_fee_cents",
                    models.BigIntegerField(
                        default=0,
                        help_text="Card processor share (estimated at checkout, actual once paid)",
                    ),
                ),
                (
                    "owner_net_cents",
                    models.BigIntegerField(
                        default=0,
                        help_text="Amount owed to the product owner (may be negative for tiny amounts)",
                    ),
                ),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("created", "Created"),
                            ("paid", "Paid"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                            ("partially_refunded", "Partially Refunded"),
                        ],
                        db_index=True,
                        default="created",
                        help_text="Current state of the purchase (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "external_payment_id",
                    models.CharField(
                        blank=True,
                        help_text="Square payment ID, unique once assigned",
                        max_length=255,
                        null=True,
                        unique=True,
                    ),
                ),
                (
                    "payer_external_id",
                    models.CharField(
                        blank=True,
                        help_text="Square customer ID reported with the payment",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "paid_at",
                    models.DateTimeField(
                        blank=True, help_text="When the payment was confirmed", null=True
                    ),
                ),
                (
                    "failed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the payment failed or was canceled",
                        null=True,
                    ),
                ),
                (
                    "refunded_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the purchase was (partially) refunded",
                        null=True,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        help_text="Product being purchased",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchases",
                        to="catalog.product",
                    ),
                ),
                (
                    "viewer",
                    models.ForeignKey(
                        help_text="Viewer paying for the product",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="purchases",
                        to="catalog.viewer",
                    ),
                ),
            ],
            options={
                "verbose_name": "Purchase",
                "verbose_name_plural": "Purchases",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["viewer", "status"], name="purchase_viewer_status_idx"
                    ),
                    models.Index(
                        fields=["product", "status"], name="purchase_product_status_idx"
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            owner_net_cents=models.F("amount_cents")
                            - models.F("platform_fee_cents")
                            - models.F("processor_fee_cents")
                        ),
                        name="purchase_fee_split_balances",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Entitlement",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "token_id",
                    models.CharField(
                        help_text="Opaque access token (watch links, playback sessions)",
                        max_length=128,
                        unique=True,
                    ),
                ),
                (
                    "valid_from",
                    models.DateTimeField(help_text="Start of the validity window"),
                ),
                (
                    "valid_to",
                    models.DateTimeField(help_text="End of the validity window"),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("revoked", "Revoked")],
                        db_index=True,
                        default="active",
                        help_text="Whether the entitlement can be used",
                        max_length=20,
                    ),
                ),
                (
                    "purchase",
                    models.OneToOneField(
                        help_text="Purchase this entitlement was issued for",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entitlement",
                        to="paywall.purchase",
                    ),
                ),
            ],
            options={
                "verbose_name": "Entitlement",
                "verbose_name_plural": "Entitlements",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Refund",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "amount_cents",
                    models.PositiveBigIntegerField(
                        help_text="Refund amount in smallest currency unit (e.g., cents)"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="USD", help_text="ISO 4217 currency code", max_length=3
                    ),
                ),
                (
                    "reason_code",
                    models.CharField(help_text="Reason for the refund", max_length=100),
                ),
                (
                    "applied_rule",
                    models.CharField(
                        blank=True,
                        help_text="Refund policy rule that fired",
                        max_length=100,
                        null=True,
                    ),
                ),
                (
                    "rule_version",
                    models.CharField(
                        help_text="Version of the refund rules applied", max_length=20
                    ),
                ),
                (
                    "telemetry_summary",
                    models.JSONField(
                        default=dict,
                        help_text="Aggregated telemetry and ratios at decision time",
                    ),
                ),
                (
                    "external_refund_id",
                    models.CharField(
                        blank=True,
                        help_text="Square refund ID",
                        max_length=255,
                        null=True,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        db_index=True,
                        help_text="When the processor accepted the refund (NULL = needs submission)",
                        null=True,
                    ),
                ),
                (
                    "submission_attempts",
                    models.PositiveSmallIntegerField(
                        default=0, help_text="Number of processor submissions"
                    ),
                ),
                (
                    "last_submitted_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the last submission was attempted",
                        null=True,
                    ),
                ),
                (
                    "last_error",
                    models.TextField(
                        blank=True,
                        help_text="Error from the last failed submission",
                        null=True,
                    ),
                ),
                (
                    "purchase",
                    models.OneToOneField(
                        help_text="Purchase being refunded (at most one refund per purchase)",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="refund",
                        to="paywall.purchase",
                    ),
                ),
            ],
            options={
                "verbose_name": "Refund",
                "verbose_name_plural": "Refunds",
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount_cents__gt=0),
                        name="refund_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                *_timestamps(),
                _uuid_pk(),
                (
                    "provider_event_id",
                    models.CharField(
                        help_text="Provider event ID - unique constraint for idempotency",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        db_index=True,
                        help_text="Provider event type (e.g., 'payment.updated')",
                        max_length=100,
                    ),
                ),
                ("payload", models.JSONField(help_text="Full webhook payload (JSON)")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current processing status",
                        max_length=20,
                    ),
                ),
                (
                    "processed_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When event was successfully processed",
                        null=True,
                    ),
                ),
                (
                    "error_message",
                    models.TextField(
                        blank=True,
                        help_text="Error message if processing failed",
                        null=True,
                    ),
                ),
                (
                    "retry_count",
                    models.PositiveSmallIntegerField(
                        default=0, help_text="Number of processing attempts"
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "retry_count"], name="webhook_status_retry_idx"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                _uuid_pk(),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this entry was recorded",
                    ),
                ),
                (
                    "entry_type",
                    models.CharField(
                        choices=[
                            ("charge", "Charge"),
                            ("platform_fee", "Platform Fee"),
                            ("processor_fee", "Processor Fee"),
                            ("refund", "Refund"),
                        ],
                        help_text="Category of this entry",
                        max_length=50,
                    ),
                ),
                (
                    "amount_cents",
                    models.BigIntegerField(
                        help_text="Signed amount in cents (credits positive, debits negative)"
                    ),
                ),
                (
                    "currency",
                    models.CharField(
                        default="USD", help_text="ISO 4217 currency code", max_length=3
                    ),
                ),
                (
                    "description",
                    models.TextField(
                        blank=True,
                        help_text="Human-readable description of this entry",
                        null=True,
                    ),
                ),
                (
                    "idempotency_key",
                    models.CharField(
                        help_text="Unique key to prevent duplicate entries",
                        max_length=255,
                        unique=True,
                    ),
                ),
                (
                    "owner",
                    models.ForeignKey(
                        help_text="Owner account this entry is booked to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="catalog.owneraccount",
                    ),
                ),
                (
                    "purchase",
                    models.ForeignKey(
                        help_text="Purchase this entry belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="paywall.purchase",
                    ),
                ),
                (
                    "refund",
                    models.ForeignKey(
                        blank=True,
                        help_text="Refund this entry belongs to (refund entries only)",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="paywall.refund",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["owner", "created_at"], name="ledger_owner_created_idx"
                    ),
                ],
            },
        ),
    ]
