"""
Tests for payer email notifications.
"""

from django.core import mail

from paywall.services.notifications import (
    EmailPayerNotifier,
    format_amount,
    refund_notice_text,
    watch_url,
)
from paywall.tests.factories import RefundFactory


def test_format_amount():
    assert format_amount(1000) == "$10.00"
    assert format_amount(5) == "$0.05"


def test_refund_notice_text():
    text = refund_notice_text(500, "Final")

    assert text == (
        "We've issued a refund of $5.00 for Final due to stream quality issues. "
        "Processing: 5-7 business days."
    )


def test_watch_url_strips_trailing_slash():
    assert watch_url("abc", "https://paywall.example.com/") == (
        "https://paywall.example.com/watch/abc"
    )


class TestEmailPayerNotifier:
    def test_purchase_receipt(self, db, entitlement):
        notifier = EmailPayerNotifier(
            from_email="tickets@example.com", app_url="https://paywall.example.com"
        )
        purchase = entitlement.purchase

        notifier.send_purchase_receipt(purchase, entitlement)

        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.subject == f"Your receipt for {purchase.product.title}"
        assert message.to == [purchase.viewer.email]
        assert message.from_email == "tickets@example.com"
        assert f"https://paywall.example.com/watch/{entitlement.token_id}" in message.body
        assert "$10.00 USD" in message.body

    def test_refund_notice(self, db):
        refund = RefundFactory(amount_cents=500)

        EmailPayerNotifier().send_refund_notice(refund)

        assert len(mail.outbox) == 1
        message = mail.outbox[0]
        assert message.subject == f"Refund issued for {refund.purchase.product.title}"
        assert message.to == [refund.purchase.viewer.email]
        assert "$5.00" in message.body
