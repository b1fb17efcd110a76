"""
Payer notifications sent by email.

Configuration:
    - EMAIL_BACKEND, DEFAULT_FROM_EMAIL: Django mail settings
    - APP_URL: Base for watch links

Usage:
    from paywall.services.notifications import EmailPayerNotifier

    notifier = EmailPayerNotifier()
    notifier.send_refund_notice(refund)
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import send_mail

from paywall.models import Entitlement, Purchase, Refund

logger = logging.getLogger(__name__)


def format_amount(amount_cents: int) -> str:
    return f"${amount_cents / 100:.2f}"


def refund_notice_text(amount_cents: int, title: str) -> str:
    """Wording shared by every refund notice channel."""
    return (
        f"We've issued a refund of {format_amount(amount_cents)} for {title} "
        "due to stream quality issues. Processing: 5-7 business days."
    )


def watch_url(token_id: str, app_url: str | None = None) -> str:
    return f"{(app_url or settings.APP_URL).rstrip('/')}/watch/{token_id}"


class EmailPayerNotifier:
    """
    PayerNotifier that sends plain-text email through Django's mail backend.

    send_mail raises on delivery failure; callers decide whether that is
    fatal (it never is for payers' notices).
    """

    def __init__(self, from_email: str | None = None, app_url: str | None = None):
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL
        self.app_url = app_url or settings.APP_URL

    def send_purchase_receipt(self, purchase: Purchase, entitlement: Entitlement) -> None:
        title = purchase.product.title
        body = (
            f"Thanks for your purchase of {title}.\n\n"
            f"Amount: {format_amount(purchase.amount_cents)} {purchase.currency}\n"
            f"Purchase: {purchase.id}\n\n"
            f"Watch here: {watch_url(entitlement.token_id, self.app_url)}\n"
        )
        send_mail(
            subject=f"Your receipt for {title}",
            message=body,
            from_email=self.from_email,
            recipient_list=[purchase.viewer.email],
        )
        logger.info(
            "Purchase receipt sent",
            extra={"purchase_id": str(purchase.id)},
        )

    def send_refund_notice(self, refund: Refund) -> None:
        purchase = refund.purchase
        send_mail(
            subject=f"Refund issued for {purchase.product.title}",
            message=refund_notice_text(refund.amount_cents, purchase.product.title),
            from_email=self.from_email,
            recipient_list=[purchase.viewer.email],
        )
        logger.info(
            "Refund notice sent",
            extra={"refund_id": str(refund.id), "purchase_id": str(purchase.id)},
        )
