"""
End-to-end purchase journey: checkout, Square webhook, playback, refund.

Only Square itself is replaced: webhooks are signed locally and the
refund call goes to the mock processor.
"""

from datetime import datetime, timezone as dt_timezone
from unittest.mock import patch

import pytest
from django.core import mail
from django.test import override_settings
from django.urls import reverse
from freezegun import freeze_time
from rest_framework import status

from catalog.tests.factories import ProductFactory
from paywall.adapters import SquareAdapter
from paywall.models import Entitlement, LedgerEntry, Purchase, Refund
from paywall.services import LedgerService, PurchaseLedger
from paywall.state_machines import PurchaseStatus
from paywall.webhooks.signature import SquareSignatureVerifier
from paywall.webhooks.tests.payloads import (
    WEBHOOK_SIGNATURE_KEY,
    WEBHOOK_URL,
    payment_body,
)

pytestmark = pytest.mark.django_db

NOW = datetime(2026, 3, 1, 19, 0, tzinfo=dt_timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)


@pytest.fixture(autouse=True)
def webhook_settings():
    with override_settings(
        SQUARE_WEBHOOK_SIGNATURE_KEY=WEBHOOK_SIGNATURE_KEY,
        SQUARE_WEBHOOK_URL=WEBHOOK_URL,
        PAYWALL_SKIP_WEBHOOK_VALIDATION=False,
    ):
        yield


@pytest.fixture
def square(mock_processor):
    with patch.object(SquareAdapter, "from_settings", return_value=mock_processor):
        yield mock_processor


def signed_post(client, body):
    signature = SquareSignatureVerifier(
        signature_key=WEBHOOK_SIGNATURE_KEY,
        notification_url=WEBHOOK_URL,
    ).compute(body, WEBHOOK_URL)
    return client.post(
        reverse("paywall:square_webhook"),
        data=body,
        content_type="application/json",
        HTTP_X_SQUARE_HMACSHA256_SIGNATURE=signature,
    )


@freeze_time(NOW)
class TestPurchaseToRefund:
    def checkout(self, api_client, product):
        response = api_client.post(
            reverse("paywall:checkout"),
            {"product_id": str(product.id), "payer_email": "fan@example.com"},
            format="json",
        )
        assert response.status_code == status.HTTP_201_CREATED
        return response.data["purchase_id"]

    def pay_by_webhook(self, client, purchase_id):
        PurchaseLedger().attach_payment(purchase_id, "sq_pay_journey")
        body = payment_body(
            "sq_pay_journey",
            "COMPLETED",
            event_id="evt_journey_1",
            processing_fee=[{"amount_money": {"amount": 59, "currency": "USD"}}],
        )
        response = signed_post(client, body)
        assert response.status_code == status.HTTP_200_OK
        return Entitlement.objects.get(purchase_id=purchase_id)

    def watch(self, api_client, token, events):
        response = api_client.post(
            reverse("playback:start_session", kwargs={"token": token})
        )
        assert response.status_code == status.HTTP_201_CREATED
        response = api_client.post(
            reverse(
                "playback:submit_telemetry",
                kwargs={"token": token, "session_id": response.data["id"]},
            ),
            {"events": events},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK
        return response.data

    def test_buffering_stream_refunded_in_full(
        self, api_client, client, staff_client, square
    ):
        product = ProductFactory()
        purchase_id = self.checkout(api_client, product)
        entitlement = self.pay_by_webhook(client, purchase_id)

        purchase = Purchase.objects.get(id=purchase_id)
        assert purchase.status == PurchaseStatus.PAID
        assert len(mail.outbox) == 1
        assert LedgerService().owner_balance(product.owner) == 1000 - 100 - 59

        session = self.watch(
            api_client,
            entitlement.token_id,
            [
                {"type": "play", "timestamp": NOW_MS},
                {"type": "buffer", "timestamp": NOW_MS + 10_000},
                {"type": "play", "timestamp": NOW_MS + 40_000},
                {"type": "pause", "timestamp": NOW_MS + 100_000},
            ],
        )
        assert session["total_watch_ms"] == 100_000
        assert session["total_buffer_ms"] == 30_000

        response = staff_client.post(
            reverse("paywall:issue_refund", kwargs={"purchase_id": purchase_id}),
            {},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["amount_cents"] == 1000
        assert response.data["applied_rule"] == "full_refund_buffer_ratio_high"
        assert Purchase.objects.get(id=purchase_id).status == PurchaseStatus.REFUNDED
        refund = Refund.objects.get(purchase_id=purchase_id)
        assert refund.is_processed is True
        assert refund.telemetry_summary["buffer_ratio"] == 0.3
        square.create_refund.assert_called_once()
        assert square.create_refund.call_args.args[0].payment_id == "sq_pay_journey"
        # Full refund: the platform fee goes back, the processor fee stays with the owner
        assert LedgerService().owner_balance(product.owner) == -59
        assert LedgerEntry.objects.filter(refund=refund).count() == 2

    def test_smooth_stream_not_refunded(self, api_client, client, staff_client, square):
        product = ProductFactory()
        purchase_id = self.checkout(api_client, product)
        entitlement = self.pay_by_webhook(client, purchase_id)

        self.watch(
            api_client,
            entitlement.token_id,
            [
                {"type": "play", "timestamp": NOW_MS + 1_500},
                {"type": "buffer", "timestamp": NOW_MS + 600_000, "duration": 2_000},
                {"type": "pause", "timestamp": NOW_MS + 3_600_000},
            ],
        )

        response = staff_client.post(
            reverse("paywall:issue_refund", kwargs={"purchase_id": purchase_id}),
            {},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "REFUND_NOT_ELIGIBLE"
        assert Purchase.objects.get(id=purchase_id).status == PurchaseStatus.PAID
        assert not Refund.objects.filter(purchase_id=purchase_id).exists()
        square.create_refund.assert_not_called()
