"""
Tests for marketplace ledger bookings.
"""

import pytest

from paywall.models import LedgerEntry
from paywall.services import LedgerService
from paywall.services.ledger_service import platform_fee_reversal
from paywall.state_machines import LedgerEntryType, PurchaseStatus
from paywall.tests.factories import PurchaseFactory, RefundFactory


@pytest.fixture
def ledger_service():
    return LedgerService()


class TestRecordPurchase:
    def test_books_sale(self, db, ledger_service, paid_purchase):
        entries = ledger_service.record_purchase(paid_purchase)

        amounts = {entry.entry_type: entry.amount_cents for entry in entries}
        assert amounts == {
            LedgerEntryType.CHARGE: 1000,
            LedgerEntryType.PLATFORM_FEE: -100,
            LedgerEntryType.PROCESSOR_FEE: -59,
        }
        assert ledger_service.owner_balance(paid_purchase.product.owner) == 841

    def test_idempotent(self, db, ledger_service, paid_purchase):
        ledger_service.record_purchase(paid_purchase)
        ledger_service.record_purchase(paid_purchase)

        assert LedgerEntry.objects.filter(purchase=paid_purchase).count() == 3
        assert ledger_service.owner_balance(paid_purchase.product.owner) == 841

    def test_zero_amounts_skipped(self, db, ledger_service):
        purchase = PurchaseFactory(
            status=PurchaseStatus.PAID,
            platform_fee_cents=0,
            processor_fee_cents=0,
        )

        entries = ledger_service.record_purchase(purchase)

        assert [entry.entry_type for entry in entries] == [LedgerEntryType.CHARGE]

    def test_idempotency_keys(self, db, ledger_service, paid_purchase):
        ledger_service.record_purchase(paid_purchase)

        keys = set(
            LedgerEntry.objects.filter(purchase=paid_purchase).values_list(
                "idempotency_key", flat=True
            )
        )
        assert keys == {
            f"purchase:{paid_purchase.id}:charge",
            f"purchase:{paid_purchase.id}:platform_fee",
            f"purchase:{paid_purchase.id}:processor_fee",
        }


class TestRecordRefund:
    def test_half_refund_reverses_half_platform_fee(self, db, ledger_service):
        refund = RefundFactory(amount_cents=500)
        ledger_service.record_purchase(refund.purchase)

        ledger_service.record_refund(refund)

        owner = refund.purchase.product.owner
        # 841 - 500 refunded + 50 platform fee returned
        assert ledger_service.owner_balance(owner) == 391
        assert LedgerEntry.objects.filter(refund=refund).count() == 2

    def test_refund_idempotent(self, db, ledger_service):
        refund = RefundFactory()

        ledger_service.record_refund(refund)
        ledger_service.record_refund(refund)

        assert LedgerEntry.objects.filter(refund=refund).count() == 2

    def test_provider_refund_keyed_by_external_id(self, db, ledger_service, paid_purchase):
        ledger_service.record_purchase(paid_purchase)

        ledger_service.record_provider_refund(paid_purchase, 1000, "sq_refund_dash")
        ledger_service.record_provider_refund(paid_purchase, 1000, "sq_refund_dash")

        entries = LedgerEntry.objects.filter(
            idempotency_key__startswith="provider-refund:sq_refund_dash:"
        )
        assert entries.count() == 2
        # Full refund: only the processor fee stays with the owner
        assert ledger_service.owner_balance(paid_purchase.product.owner) == -59


class TestPlatformFeeReversal:
    @pytest.mark.parametrize(
        "refund_amount,expected",
        [
            (1000, 100),
            (1500, 100),
            (500, 50),
            (250, 25),
            (333, 33),
        ],
    )
    def test_proportional_and_floored(self, db, refund_amount, expected):
        purchase = PurchaseFactory()

        assert platform_fee_reversal(purchase, refund_amount) == expected
