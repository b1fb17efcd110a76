"""
Tests for PurchaseLedger: checkout creation and purchase transitions.
"""

import uuid
from urllib.parse import parse_qs, urlparse

import pytest

from catalog.models import ProductState, Viewer
from catalog.tests.factories import ProductFactory, ViewerFactory
from core.exceptions import NotFoundError
from paywall.exceptions import InvalidStateTransitionError, PurchaseNotFoundError
from paywall.fees import FeeCalculator
from paywall.models import Purchase
from paywall.services import PurchaseLedger
from paywall.state_machines import PurchaseStatus
from paywall.tests.factories import PurchaseFactory


class TestCreatePurchase:
    def test_creates_purchase_with_fee_split(self, db, purchase_ledger):
        product = ProductFactory(price_cents=1000)

        handle = purchase_ledger.create_purchase(product.id, "fan@example.com")

        purchase = Purchase.objects.get(id=handle.purchase_id)
        assert purchase.status == PurchaseStatus.CREATED
        assert purchase.amount_cents == 1000
        assert purchase.platform_fee_cents == 100
        assert purchase.processor_fee_cents == 59
        assert purchase.owner_net_cents == 841
        assert purchase.product_id == product.id

    def test_checkout_url(self, db, purchase_ledger):
        product = ProductFactory()

        handle = purchase_ledger.create_purchase(
            product.id,
            "fan@example.com",
            return_url="https://club.example.com/thanks",
        )

        url = urlparse(handle.checkout_url)
        query = parse_qs(url.query)
        assert url.netloc == "paywall.example.com"
        assert url.path == f"/checkout/{handle.purchase_id}"
        assert query["square_checkout"] == ["true"]
        assert query["email"] == ["fan@example.com"]
        assert query["returnUrl"] == ["https://club.example.com/thanks"]

    def test_default_return_url(self, db, purchase_ledger):
        handle = purchase_ledger.create_purchase(ProductFactory().id, "fan@example.com")

        query = parse_qs(urlparse(handle.checkout_url).query)
        assert query["returnUrl"] == [
            f"https://paywall.example.com/checkout/{handle.purchase_id}/success"
        ]

    def test_viewer_resolved_case_insensitively(self, db, purchase_ledger):
        viewer = ViewerFactory(email="fan@example.com")

        handle = purchase_ledger.create_purchase(ProductFactory().id, "  Fan@Example.COM ")

        assert Purchase.objects.get(id=handle.purchase_id).viewer_id == viewer.id
        assert Viewer.objects.count() == 1

    def test_phone_stored_on_new_viewer(self, db, purchase_ledger):
        purchase_ledger.create_purchase(
            ProductFactory().id, "new@example.com", payer_phone="+15551234567"
        )

        assert Viewer.objects.get(email="new@example.com").phone_e164 == "+15551234567"

    def test_uses_injected_fee_calculator(self, db):
        ledger = PurchaseLedger(
            fee_calculator=FeeCalculator(platform_fee_percent=20),
            app_url="https://paywall.example.com",
        )

        handle = ledger.create_purchase(ProductFactory().id, "fan@example.com")

        assert Purchase.objects.get(id=handle.purchase_id).platform_fee_cents == 200

    def test_unknown_product(self, db, purchase_ledger):
        with pytest.raises(NotFoundError, match="Game not found"):
            purchase_ledger.create_purchase(uuid.uuid4(), "fan@example.com")

    @pytest.mark.parametrize(
        "state",
        [ProductState.DRAFT, ProductState.ENDED, ProductState.CANCELLED],
    )
    def test_product_not_purchasable(self, db, purchase_ledger, state):
        product = ProductFactory(state=state)

        with pytest.raises(NotFoundError, match="Game not available for purchase"):
            purchase_ledger.create_purchase(product.id, "fan@example.com")

        assert Purchase.objects.count() == 0

    def test_live_product_purchasable(self, db, purchase_ledger):
        product = ProductFactory(state=ProductState.LIVE)

        handle = purchase_ledger.create_purchase(product.id, "fan@example.com")

        assert Purchase.objects.filter(id=handle.purchase_id).exists()


class TestLookups:
    def test_get_purchase_unknown(self, db, purchase_ledger):
        with pytest.raises(PurchaseNotFoundError):
            purchase_ledger.get_purchase(uuid.uuid4())

    def test_find_by_external_payment_id(self, db, purchase_ledger, paid_purchase):
        assert purchase_ledger.find_by_external_payment_id("sq_pay_paid") == paid_purchase
        assert purchase_ledger.find_by_external_payment_id("sq_pay_other") is None


class TestTransitions:
    def test_mark_paid(self, db, purchase_ledger, created_purchase):
        purchase = purchase_ledger.mark_paid(
            created_purchase.id,
            external_payment_id="sq_pay_created",
            payer_external_id="sq_cust_1",
            processor_fee_cents=62,
        )

        assert purchase.status == PurchaseStatus.PAID
        assert purchase.processor_fee_cents == 62
        assert purchase.owner_net_cents == 838
        purchase = Purchase.objects.get(id=created_purchase.id)
        assert purchase.status == PurchaseStatus.PAID
        assert purchase.viewer.square_customer_id == "sq_cust_1"

    def test_mark_paid_twice_same_payment_is_noop(
        self, db, purchase_ledger, created_purchase
    ):
        first = purchase_ledger.mark_paid(created_purchase.id, "sq_pay_created")
        second = purchase_ledger.mark_paid(created_purchase.id, "sq_pay_created")

        assert second.status == PurchaseStatus.PAID
        assert second.paid_at == first.paid_at
        assert second.version == first.version

    def test_mark_paid_different_payment_rejected(self, db, purchase_ledger, paid_purchase):
        with pytest.raises(InvalidStateTransitionError):
            purchase_ledger.mark_paid(paid_purchase.id, "sq_pay_someone_else")

    def test_mark_paid_after_failure_rejected(self, db, purchase_ledger):
        purchase = PurchaseFactory(status=PurchaseStatus.FAILED)

        with pytest.raises(InvalidStateTransitionError):
            purchase_ledger.mark_paid(purchase.id, "sq_pay_late")

        assert Purchase.objects.get(id=purchase.id).status == PurchaseStatus.FAILED

    def test_mark_failed(self, db, purchase_ledger, created_purchase):
        purchase = purchase_ledger.mark_failed(created_purchase.id)

        assert purchase.status == PurchaseStatus.FAILED
        assert purchase.failed_at is not None

    def test_mark_failed_on_paid_rejected(self, db, purchase_ledger, paid_purchase):
        with pytest.raises(InvalidStateTransitionError) as exc_info:
            purchase_ledger.mark_failed(paid_purchase.id)

        assert exc_info.value.details["current_state"] == PurchaseStatus.PAID
        assert Purchase.objects.get(id=paid_purchase.id).status == PurchaseStatus.PAID

    @pytest.mark.parametrize(
        "is_full,expected",
        [
            (True, PurchaseStatus.REFUNDED),
            (False, PurchaseStatus.PARTIALLY_REFUNDED),
        ],
    )
    def test_mark_refunded(self, db, purchase_ledger, paid_purchase, is_full, expected):
        purchase = purchase_ledger.mark_refunded(paid_purchase.id, is_full=is_full)

        assert purchase.status == expected
        assert purchase.refunded_at is not None

    def test_mark_refunded_requires_paid(self, db, purchase_ledger, created_purchase):
        with pytest.raises(InvalidStateTransitionError):
            purchase_ledger.mark_refunded(created_purchase.id, is_full=True)

    def test_attach_payment(self, db, purchase_ledger):
        purchase = PurchaseFactory()

        purchase = purchase_ledger.attach_payment(
            purchase.id, external_payment_id="sq_pay_attached", processor_fee_cents=60
        )

        assert purchase.external_payment_id == "sq_pay_attached"
        assert purchase.status == PurchaseStatus.CREATED
        assert purchase.owner_net_cents == 840

    def test_attach_payment_requires_created(self, db, purchase_ledger, paid_purchase):
        with pytest.raises(InvalidStateTransitionError):
            purchase_ledger.attach_payment(paid_purchase.id, "sq_pay_other")

    def test_unknown_purchase(self, db, purchase_ledger):
        with pytest.raises(PurchaseNotFoundError):
            purchase_ledger.mark_failed(uuid.uuid4())
