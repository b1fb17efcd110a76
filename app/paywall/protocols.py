"""
Protocol definitions for paywall collaborators.

Services receive these collaborators through their constructors instead of
reaching for module-level clients, so tests pass fakes or mocks directly.

Available Protocols:
    PaymentProcessor: Charges and refunds (SquareAdapter implements it)
    PayerNotifier: Receipts and refund notices (EmailPayerNotifier implements it)

Usage:
    from paywall.protocols import PaymentProcessor

    class FakeProcessor:
        def create_payment(self, params, trace_id=None): ...
        def create_refund(self, params, trace_id=None): ...

    issuer = RefundIssuer(processor=FakeProcessor())
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from paywall.adapters import (
        CreatePaymentParams,
        CreateRefundParams,
        PaymentResult,
        RefundResult,
    )
    from paywall.models import Entitlement, Purchase, Refund


@runtime_checkable
class PaymentProcessor(Protocol):
    """
    Protocol for the external payment processor.

    Implementations must be idempotent per idempotency key and raise
    paywall.exceptions.PaymentProcessorError subclasses on failure.
    """

    def create_payment(
        self,
        params: CreatePaymentParams,
        trace_id: str | None = None,
    ) -> PaymentResult:
        """Charge a payment source."""
        ...

    def create_refund(
        self,
        params: CreateRefundParams,
        trace_id: str | None = None,
    ) -> RefundResult:
        """Refund (part of) a payment."""
        ...


@runtime_checkable
class PayerNotifier(Protocol):
    """
    Protocol for messages sent to payers.

    Callers treat delivery as best-effort: they log failures and carry on.
    """

    def send_purchase_receipt(self, purchase: Purchase, entitlement: Entitlement) -> None:
        """Send the receipt with the watch link."""
        ...

    def send_refund_notice(self, refund: Refund) -> None:
        """Tell the payer a refund was issued."""
        ...
