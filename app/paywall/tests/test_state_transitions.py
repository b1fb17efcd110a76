"""
Tests for Purchase state machine transitions using django-fsm.
"""

import pytest
from django_fsm import TransitionNotAllowed

from paywall.models import Purchase
from paywall.state_machines import PurchaseStatus
from paywall.tests.factories import PurchaseFactory


class TestPurchaseTransitions:
    """Tests for Purchase state machine transitions."""

    # -------------------------------------------------------------------------
    # Valid Transitions
    # -------------------------------------------------------------------------

    def test_created_to_paid(self, db):
        purchase = PurchaseFactory()
        purchase.pay(external_payment_id="sq_pay_1", payer_external_id="sq_cust_1")
        purchase.save()

        purchase = Purchase.objects.get(id=purchase.id)
        assert purchase.status == PurchaseStatus.PAID
        assert purchase.external_payment_id == "sq_pay_1"
        assert purchase.payer_external_id == "sq_cust_1"
        assert purchase.paid_at is not None

    def test_created_to_failed(self, db):
        purchase = PurchaseFactory()
        purchase.fail()
        purchase.save()

        assert purchase.status == PurchaseStatus.FAILED
        assert purchase.failed_at is not None

    def test_paid_to_refunded(self, db):
        purchase = PurchaseFactory(status=PurchaseStatus.PAID)
        purchase.refund_full()
        purchase.save()

        assert purchase.status == PurchaseStatus.REFUNDED
        assert purchase.refunded_at is not None

    def test_paid_to_partially_refunded(self, db):
        purchase = PurchaseFactory(status=PurchaseStatus.PAID)
        purchase.refund_partial()
        purchase.save()

        assert purchase.status == PurchaseStatus.PARTIALLY_REFUNDED

    # -------------------------------------------------------------------------
    # Invalid Transitions
    # -------------------------------------------------------------------------

    def test_cannot_fail_paid_purchase(self, db):
        purchase = PurchaseFactory(status=PurchaseStatus.PAID)

        with pytest.raises(TransitionNotAllowed):
            purchase.fail()

    def test_cannot_pay_failed_purchase(self, db):
        purchase = PurchaseFactory(status=PurchaseStatus.FAILED)

        with pytest.raises(TransitionNotAllowed):
            purchase.pay(external_payment_id="sq_pay_late")

    def test_cannot_refund_created_purchase(self, db):
        purchase = PurchaseFactory()

        with pytest.raises(TransitionNotAllowed):
            purchase.refund_full()

    @pytest.mark.parametrize(
        "terminal",
        [PurchaseStatus.REFUNDED, PurchaseStatus.PARTIALLY_REFUNDED],
    )
    def test_refunded_is_terminal(self, db, terminal):
        purchase = PurchaseFactory(status=terminal)

        with pytest.raises(TransitionNotAllowed):
            purchase.refund_partial()
        with pytest.raises(TransitionNotAllowed):
            purchase.pay(external_payment_id="sq_pay_again")

    def test_status_cannot_be_assigned_directly(self, db):
        purchase = PurchaseFactory()

        with pytest.raises(AttributeError):
            purchase.status = PurchaseStatus.PAID
