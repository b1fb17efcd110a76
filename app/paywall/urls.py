"""
URL configuration for the paywall app.

All routes are prefixed with /api/v1/paywall/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("paywall/", include("paywall.urls")),
    ]
"""

from django.urls import path

from paywall.views import (
    CheckoutView,
    IssueRefundView,
    ProcessPaymentView,
    RefundEvaluationView,
)
from paywall.webhooks.views import square_webhook

app_name = "paywall"

urlpatterns = [
    path("checkout/", CheckoutView.as_view(), name="checkout"),
    path("purchases/<uuid:purchase_id>/pay/", ProcessPaymentView.as_view(), name="pay"),
    path(
        "admin/purchases/<uuid:purchase_id>/refund-evaluation/",
        RefundEvaluationView.as_view(),
        name="refund_evaluation",
    ),
    path(
        "admin/purchases/<uuid:purchase_id>/refunds/",
        IssueRefundView.as_view(),
        name="issue_refund",
    ),
    # Webhook endpoints
    path("webhooks/square/", square_webhook, name="square_webhook"),
]
