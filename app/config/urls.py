"""
URL configuration for the Django application.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/paywall/               - Paywall endpoints
        checkout/                  - Create purchase + checkout link (POST)
        purchases/{id}/pay/        - Charge a card nonce (POST)
        admin/purchases/{id}/refund-evaluation/ - Refund eligibility (GET, staff)
        admin/purchases/{id}/refunds/ - Issue refund (POST, staff)
        webhooks/square/           - Square webhook endpoint (POST)
    /api/v1/playback/              - Playback endpoints
        watch/{token}/sessions/    - Open a session (POST)
        watch/{token}/sessions/{id}/end/       - Close with summary (POST)
        watch/{token}/sessions/{id}/telemetry/ - Close with raw events (POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Paywall
    path("paywall/", include("paywall.urls")),
    # Playback
    path("playback/", include("playback.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Paywall Admin"
admin.site.site_title = "Paywall Admin Portal"
admin.site.index_title = "Purchases, refunds and playback"
