"""
Payment adapters for external services.

All Square API calls go through these adapters to get consistent error
handling, timeouts, idempotency and observability.

Usage:
    from paywall.adapters import SquareAdapter, CreatePaymentParams

    result = SquareAdapter.from_settings().create_payment(
        CreatePaymentParams(
            source_id="cnon:card-nonce-ok",
            amount_cents=1000,
            currency="USD",
            idempotency_key=IdempotencyKeyGenerator.for_payment(purchase.id),
        )
    )
"""

from paywall.adapters.square_adapter import (
    CreatePaymentParams,
    CreateRefundParams,
    IdempotencyKeyGenerator,
    PaymentResult,
    RefundResult,
    SquareAdapter,
    processing_fee_cents,
)

__all__ = [
    "CreatePaymentParams",
    "CreateRefundParams",
    "IdempotencyKeyGenerator",
    "PaymentResult",
    "RefundResult",
    "SquareAdapter",
    "processing_fee_cents",
]
