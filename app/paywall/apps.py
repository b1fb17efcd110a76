"""
Paywall app configuration.

This app provides the money side of the marketplace:
- Purchases with a platform/processor/owner fee split
- Square payments, refunds and webhooks
- Entitlements issued once per paid purchase
- Telemetry-driven refund policy
- Owner ledger
"""

from django.apps import AppConfig


class PaywallConfig(AppConfig):
    """Configuration for the paywall application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "paywall"
    verbose_name = "Paywall"
