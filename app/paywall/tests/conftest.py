"""
Pytest fixtures for paywall tests.

Fixtures provide purchases in each state plus mocked collaborators
(processor, notifier) so services can be exercised without Square or mail.

Usage:
    def test_mark_failed(created_purchase):
        purchase = PurchaseLedger().mark_failed(created_purchase.id)
        assert purchase.status == PurchaseStatus.FAILED
"""

from unittest.mock import Mock

import pytest

from paywall.adapters import PaymentResult, RefundResult
from paywall.protocols import PayerNotifier, PaymentProcessor
from paywall.services import (
    EntitlementIssuer,
    LedgerService,
    PaymentFulfillment,
    PurchaseLedger,
    RefundIssuer,
    RefundRules,
)
from paywall.state_machines import PurchaseStatus
from paywall.tests.factories import EntitlementFactory, PurchaseFactory


# =============================================================================
# Purchase Fixtures
# =============================================================================


@pytest.fixture
def created_purchase(db):
    """Purchase awaiting payment."""
    return PurchaseFactory(external_payment_id="sq_pay_created")


@pytest.fixture
def paid_purchase(db):
    """Paid purchase with a Square payment id."""
    return PurchaseFactory(
        status=PurchaseStatus.PAID,
        external_payment_id="sq_pay_paid",
    )


@pytest.fixture
def entitlement(db, paid_purchase):
    """Active entitlement for the paid purchase."""
    return EntitlementFactory(purchase=paid_purchase)


# =============================================================================
# Collaborator Fixtures
# =============================================================================


@pytest.fixture
def mock_processor():
    """PaymentProcessor whose calls succeed."""
    processor = Mock(spec=PaymentProcessor)
    processor.create_refund.return_value = RefundResult(
        id="sq_refund_1",
        status="PENDING",
        amount_cents=500,
        currency="USD",
        payment_id="sq_pay_paid",
    )
    processor.create_payment.return_value = PaymentResult(
        id="sq_pay_new",
        status="COMPLETED",
        amount_cents=1000,
        currency="USD",
        processing_fee_cents=59,
        customer_id="sq_cust_1",
    )
    return processor


@pytest.fixture
def mock_notifier():
    """PayerNotifier recording calls."""
    return Mock(spec=PayerNotifier)


@pytest.fixture
def purchase_ledger():
    return PurchaseLedger(app_url="https://paywall.example.com")


@pytest.fixture
def fulfillment(purchase_ledger, mock_notifier):
    return PaymentFulfillment(
        purchase_ledger=purchase_ledger,
        entitlement_issuer=EntitlementIssuer(default_validity_hours=24),
        ledger_service=LedgerService(),
        notifier=mock_notifier,
    )


@pytest.fixture
def refund_issuer(purchase_ledger, mock_processor, mock_notifier):
    """RefundIssuer with default rules and mocked processor/notifier."""
    return RefundIssuer(
        purchase_ledger=purchase_ledger,
        processor=mock_processor,
        notifier=mock_notifier,
        ledger_service=LedgerService(),
        rules=RefundRules(),
    )

