"""
DRF serializers for the paywall app.

This module provides serializers for:
- Checkout creation requests and responses
- Card payment requests and outcomes
- Refund evaluations and refunds (admin)

Related files:
    - views.py: Paywall API views
    - types.py: CheckoutHandle, EvaluationResult
"""

from __future__ import annotations

from rest_framework import serializers

from paywall.models import Refund


class CheckoutRequestSerializer(serializers.Serializer):
    """
    Checkout creation input.

    Fields:
        product_id: Product to buy
        payer_email: Payer email (case-insensitive)
        payer_phone: Optional E.164 phone
        return_url: Where to send the payer after checkout
    """

    product_id = serializers.UUIDField()
    payer_email = serializers.EmailField()
    payer_phone = serializers.RegexField(
        regex=r"^\+[1-9]\d{1,14}$",
        required=False,
        allow_null=True,
        error_messages={"invalid": "Phone must be in E.164 format (e.g. +15551234567)"},
    )
    return_url = serializers.URLField(required=False, allow_null=True)


class CheckoutResponseSerializer(serializers.Serializer):
    purchase_id = serializers.UUIDField()
    checkout_url = serializers.CharField()


class ProcessPaymentRequestSerializer(serializers.Serializer):
    source_id = serializers.CharField(max_length=255)


class PaymentOutcomeSerializer(serializers.Serializer):
    purchase_id = serializers.UUIDField()
    status = serializers.CharField()
    entitlement_token = serializers.CharField(allow_null=True)


class TelemetrySummarySerializer(serializers.Serializer):
    watch_ms = serializers.IntegerField()
    buffer_ms = serializers.IntegerField()
    buffer_events = serializers.IntegerField()
    fatal_errors = serializers.IntegerField()
    stream_down_ms = serializers.IntegerField()


class RefundEvaluationSerializer(serializers.Serializer):
    """
    Refund evaluation output.

    Serializes EvaluationResult.to_dict(); amount_cents is null when not
    eligible.
    """

    eligible = serializers.BooleanField()
    tier = serializers.CharField()
    reason_code = serializers.CharField(allow_null=True)
    amount_cents = serializers.IntegerField(allow_null=True)
    rule_version = serializers.CharField()
    buffer_ratio = serializers.FloatField()
    downtime_ratio = serializers.FloatField()
    applied_rule = serializers.CharField(allow_null=True)
    telemetry_summary = TelemetrySummarySerializer()


class IssueRefundRequestSerializer(serializers.Serializer):
    reason_code = serializers.CharField(max_length=100, required=False, allow_null=True)


class RefundSerializer(serializers.ModelSerializer):
    """Refund as returned to admins."""

    purchase_id = serializers.UUIDField(read_only=True)
    is_processed = serializers.BooleanField(read_only=True)

    class Meta:
        model = Refund
        fields = [
            "id",
            "purchase_id",
            "amount_cents",
            "currency",
            "reason_code",
            "applied_rule",
            "rule_version",
            "telemetry_summary",
            "external_refund_id",
            "processed_at",
            "is_processed",
            "submission_attempts",
            "created_at",
        ]
        read_only_fields = fields
