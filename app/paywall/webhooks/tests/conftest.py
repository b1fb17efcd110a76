"""
Pytest fixtures for Square webhook tests.

Usage:
    def test_paid(processor, created_purchase):
        body = payment_body("sq_pay_created", "COMPLETED")
        processor.ingest(body, sign(body), WEBHOOK_URL)
"""

from unittest.mock import Mock

import pytest

from paywall.protocols import PayerNotifier
from paywall.services import (
    EntitlementIssuer,
    LedgerService,
    PaymentFulfillment,
    PurchaseLedger,
)
from paywall.state_machines import PurchaseStatus
from paywall.tests.factories import PurchaseFactory
from paywall.webhooks.processor import WebhookProcessor
from paywall.webhooks.signature import SquareSignatureVerifier
from paywall.webhooks.tests.payloads import WEBHOOK_SIGNATURE_KEY, WEBHOOK_URL


@pytest.fixture
def verifier():
    return SquareSignatureVerifier(
        signature_key=WEBHOOK_SIGNATURE_KEY,
        notification_url=WEBHOOK_URL,
    )


@pytest.fixture
def sign(verifier):
    """Signature Square would send for a body."""
    return lambda body: verifier.compute(body, WEBHOOK_URL)


@pytest.fixture
def mock_notifier():
    return Mock(spec=PayerNotifier)


@pytest.fixture
def processor(verifier, mock_notifier):
    purchase_ledger = PurchaseLedger(app_url="https://paywall.example.com")
    return WebhookProcessor(
        purchase_ledger=purchase_ledger,
        fulfillment=PaymentFulfillment(
            purchase_ledger=purchase_ledger,
            entitlement_issuer=EntitlementIssuer(default_validity_hours=24),
            ledger_service=LedgerService(),
            notifier=mock_notifier,
        ),
        ledger_service=LedgerService(),
        verifier=verifier,
    )


@pytest.fixture
def created_purchase(db):
    """Purchase whose Square payment is attached but not yet completed."""
    return PurchaseFactory(external_payment_id="sq_pay_created")


@pytest.fixture
def paid_purchase(db):
    return PurchaseFactory(status=PurchaseStatus.PAID, external_payment_id="sq_pay_paid")
