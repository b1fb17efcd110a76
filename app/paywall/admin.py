"""
Paywall admin configuration.

Financial rows are read-mostly here: state moves through services and
webhooks, never by editing a status column.
"""

from django.contrib import admin

from paywall.models import Entitlement, LedgerEntry, Purchase, Refund, WebhookEvent


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    """
    Admin configuration for Purchase.

    Status is an FSM field and is never edited directly.
    """

    list_display = [
        "id",
        "product",
        "viewer",
        "amount_display",
        "status",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "created_at"]
    search_fields = ["id", "external_payment_id", "viewer__email", "product__title"]
    readonly_fields = [
        "id",
        "status",
        "external_payment_id",
        "payer_external_id",
        "paid_at",
        "failed_at",
        "refunded_at",
        "created_at",
        "updated_at",
        "version",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "product", "viewer", "status"),
            },
        ),
        (
            "Fee Split",
            {
                "fields": (
                    "amount_cents",
                    "currency",
                    "platform_fee_cents",
                    "processor_fee_cents",
                    "owner_net_cents",
                ),
            },
        ),
        (
            "Square",
            {
                "fields": ("external_payment_id", "payer_external_id"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": (
                    "paid_at",
                    "failed_at",
                    "refunded_at",
                    "created_at",
                    "updated_at",
                    "version",
                ),
                "classes": ("collapse",),
            },
        ),
    )

    @admin.display(description="Amount")
    def amount_display(self, obj):
        return f"${obj.amount_cents / 100:.2f} {obj.currency}"


@admin.register(Entitlement)
class EntitlementAdmin(admin.ModelAdmin):
    list_display = ["id", "purchase", "status", "valid_from", "valid_to"]
    list_filter = ["status"]
    search_fields = ["id", "token_id", "purchase__id"]
    readonly_fields = ["id", "purchase", "token_id", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    """
    Admin configuration for Refund.

    Rows with an empty processed_at are waiting for the retry sweep.
    """

    list_display = [
        "id",
        "purchase",
        "amount_cents",
        "reason_code",
        "applied_rule",
        "submission_attempts",
        "processed_at",
        "created_at",
    ]
    list_filter = ["reason_code", "rule_version", "created_at"]
    search_fields = ["id", "external_refund_id", "purchase__id"]
    readonly_fields = [
        "id",
        "purchase",
        "amount_cents",
        "currency",
        "reason_code",
        "applied_rule",
        "rule_version",
        "telemetry_summary",
        "external_refund_id",
        "processed_at",
        "submission_attempts",
        "last_submitted_at",
        "last_error",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "provider_event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "provider_event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "provider_event_id",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "provider_event_id", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
    )


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    """Ledger entries are append-only."""

    list_display = ["created_at", "owner", "entry_type", "amount_cents", "purchase"]
    list_filter = ["entry_type", "currency"]
    search_fields = ["idempotency_key", "purchase__id", "owner__name"]
    ordering = ["-created_at"]

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
