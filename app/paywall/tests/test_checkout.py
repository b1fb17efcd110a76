"""
Tests for the on-page card payment flow.
"""

import pytest

from paywall.adapters import PaymentResult
from paywall.exceptions import InvalidStateTransitionError, ProcessorRequestError
from paywall.models import Entitlement, Purchase
from paywall.services import CheckoutService
from paywall.state_machines import PurchaseStatus
from paywall.tests.factories import PurchaseFactory


@pytest.fixture
def checkout_service(purchase_ledger, mock_processor, fulfillment):
    return CheckoutService(
        purchase_ledger=purchase_ledger,
        processor=mock_processor,
        fulfillment=fulfillment,
    )


@pytest.fixture
def unpaid_purchase(db):
    return PurchaseFactory()


class TestProcessPayment:
    def test_completed_payment_fulfills(
        self, db, checkout_service, unpaid_purchase, mock_processor
    ):
        outcome = checkout_service.process_payment(unpaid_purchase.id, source_id="cnon:ok")

        assert outcome.status == "paid"
        entitlement = Entitlement.objects.get(purchase=unpaid_purchase)
        assert outcome.entitlement_token == entitlement.token_id
        purchase = Purchase.objects.get(id=unpaid_purchase.id)
        assert purchase.status == PurchaseStatus.PAID
        assert purchase.external_payment_id == "sq_pay_new"
        assert purchase.viewer.square_customer_id == "sq_cust_1"

        params = mock_processor.create_payment.call_args.args[0]
        assert params.source_id == "cnon:ok"
        assert params.amount_cents == 1000
        assert params.app_fee_cents == 100
        assert params.idempotency_key == str(unpaid_purchase.id)
        assert params.reference_id == str(unpaid_purchase.id)

    def test_declined_status_marks_failed(
        self, db, checkout_service, unpaid_purchase, mock_processor
    ):
        mock_processor.create_payment.return_value = PaymentResult(
            id="sq_pay_failed",
            status="FAILED",
            amount_cents=1000,
            currency="USD",
        )

        outcome = checkout_service.process_payment(unpaid_purchase.id, source_id="cnon:bad")

        assert outcome.status == "failed"
        assert outcome.entitlement_token is None
        purchase = Purchase.objects.get(id=unpaid_purchase.id)
        assert purchase.status == PurchaseStatus.FAILED
        assert purchase.external_payment_id == "sq_pay_failed"

    def test_processor_rejection_leaves_purchase_created(
        self, db, checkout_service, unpaid_purchase, mock_processor
    ):
        mock_processor.create_payment.side_effect = ProcessorRequestError(
            "Card declined", processor_code="CARD_DECLINED", http_status=400
        )

        with pytest.raises(ProcessorRequestError):
            checkout_service.process_payment(unpaid_purchase.id, source_id="cnon:bad")

        assert Purchase.objects.get(id=unpaid_purchase.id).status == PurchaseStatus.CREATED

    def test_already_paid_rejected(self, db, checkout_service, paid_purchase, mock_processor):
        with pytest.raises(InvalidStateTransitionError):
            checkout_service.process_payment(paid_purchase.id, source_id="cnon:ok")

        mock_processor.create_payment.assert_not_called()
