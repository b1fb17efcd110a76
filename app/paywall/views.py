"""
DRF views for the paywall app.

Endpoints:
    POST /api/v1/paywall/checkout/ - Create a purchase and checkout link
    POST /api/v1/paywall/purchases/{id}/pay/ - Charge a card nonce
    GET  /api/v1/paywall/admin/purchases/{id}/refund-evaluation/ - Evaluate refund
    POST /api/v1/paywall/admin/purchases/{id}/refunds/ - Issue the policy refund
    POST /api/v1/paywall/webhooks/square/ - Square webhook (see webhooks/views.py)

Security:
    - Checkout and payment are public (the payer has no account)
    - Refund endpoints require a staff user
    - Webhook verifies the Square signature

Errors raised by services (core.exceptions) are rendered by
core.views.application_exception_handler.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from paywall.serializers import (
    CheckoutRequestSerializer,
    CheckoutResponseSerializer,
    IssueRefundRequestSerializer,
    PaymentOutcomeSerializer,
    ProcessPaymentRequestSerializer,
    RefundEvaluationSerializer,
    RefundSerializer,
)
from paywall.services import CheckoutService, PurchaseLedger, RefundIssuer

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    Create a purchase for a product.

    URL: /api/v1/paywall/checkout/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Create checkout",
        description="Create a purchase in 'created' state and return the checkout link.",
        tags=["Paywall"],
        request=CheckoutRequestSerializer,
        responses={
            201: CheckoutResponseSerializer,
            404: OpenApiResponse(description="Game not found or not available for purchase"),
        },
    )
    def post(self, request):
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        handle = PurchaseLedger().create_purchase(
            product_id=data["product_id"],
            payer_email=data["payer_email"],
            payer_phone=data.get("payer_phone"),
            return_url=data.get("return_url"),
        )
        return Response(
            CheckoutResponseSerializer(handle).data,
            status=status.HTTP_201_CREATED,
        )


class ProcessPaymentView(APIView):
    """
    Charge a purchase with a card nonce from the checkout page.

    URL: /api/v1/paywall/purchases/{purchase_id}/pay/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Pay for a purchase",
        description=(
            "Charge the card nonce. On success the purchase is paid and the "
            "entitlement token is returned."
        ),
        tags=["Paywall"],
        request=ProcessPaymentRequestSerializer,
        responses={
            200: PaymentOutcomeSerializer,
            400: OpenApiResponse(description="Purchase is not awaiting payment"),
            404: OpenApiResponse(description="Purchase not found"),
            502: OpenApiResponse(description="Payment processor error"),
        },
    )
    def post(self, request, purchase_id):
        serializer = ProcessPaymentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        outcome = CheckoutService().process_payment(
            purchase_id=purchase_id,
            source_id=serializer.validated_data["source_id"],
        )
        return Response(PaymentOutcomeSerializer(outcome).data)


class RefundEvaluationView(APIView):
    """
    Evaluate refund eligibility from the purchase's playback telemetry.

    URL: /api/v1/paywall/admin/purchases/{purchase_id}/refund-evaluation/
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        summary="Evaluate refund eligibility",
        tags=["Paywall - Admin"],
        responses={
            200: RefundEvaluationSerializer,
            404: OpenApiResponse(description="Purchase not found"),
        },
    )
    def get(self, request, purchase_id):
        evaluation = RefundIssuer().evaluate_for_purchase(purchase_id)
        return Response(RefundEvaluationSerializer(evaluation.to_dict()).data)


class IssueRefundView(APIView):
    """
    Issue the policy refund for a purchase.

    URL: /api/v1/paywall/admin/purchases/{purchase_id}/refunds/
    """

    permission_classes = [IsAdminUser]

    @extend_schema(
        summary="Issue refund",
        description=(
            "Re-evaluate eligibility, persist the refund and submit it to Square. "
            "A processor failure answers 502; the refund stays recorded and is "
            "resubmitted by the retry sweep."
        ),
        tags=["Paywall - Admin"],
        request=IssueRefundRequestSerializer,
        responses={
            201: RefundSerializer,
            400: OpenApiResponse(description="Already refunded or not eligible"),
            404: OpenApiResponse(description="Purchase not found"),
            502: OpenApiResponse(description="Payment processor error"),
        },
    )
    def post(self, request, purchase_id):
        serializer = IssueRefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refund = RefundIssuer().issue_refund(
            purchase_id,
            reason_code=serializer.validated_data.get("reason_code"),
        )
        logger.info(
            "Refund issued by admin",
            extra={"refund_id": str(refund.id), "admin_user_id": request.user.pk},
        )
        return Response(RefundSerializer(refund).data, status=status.HTTP_201_CREATED)
