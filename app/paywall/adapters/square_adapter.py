"""
Square API adapter for payment operations.

This module provides the SquareAdapter class which encapsulates all
Square REST calls made by the paywall. Every call goes through this
adapter to get consistent timeouts, idempotency keys, error translation
and timing logs.

Features:
- Configurable timeout on every HTTP call
- Automatic error translation to paywall exceptions
- Structured logging with timing metrics
- Idempotency keys on every mutating call

Configuration (via settings):
- SQUARE_ACCESS_TOKEN: API access token
- SQUARE_LOCATION_ID: Location receiving payments
- SQUARE_ENVIRONMENT: "sandbox" or "production"
- SQUARE_API_TIMEOUT_SECONDS: HTTP timeout (default: 10)

Usage:
    from paywall.adapters import SquareAdapter, CreateRefundParams

    adapter = SquareAdapter.from_settings()
    result = adapter.create_refund(
        CreateRefundParams(
            payment_id="sq_payment_123",
            amount_cents=500,
            currency="USD",
            idempotency_key=IdempotencyKeyGenerator.for_refund(refund.id),
            reason="half_refund_buffer_ratio_medium",
        )
    )
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import requests
from django.conf import settings

from paywall.exceptions import (
    PaymentProcessorError,
    ProcessorRateLimitError,
    ProcessorRequestError,
    ProcessorTimeoutError,
    ProcessorUnavailableError,
)

SQUARE_BASE_URLS = {
    "sandbox": "https://connect.squareupsandbox.com",
    "production": "https://connect.squareup.com",
}
SQUARE_API_VERSION = "2024-01-18"
SQUARE_MAX_IDEMPOTENCY_KEY_LENGTH = 45


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreatePaymentParams:
    """
    Parameters for charging a card nonce.

    Attributes:
        source_id: Card nonce or stored card id from the payment form
        amount_cents: Gross amount
        currency: ISO 4217 code
        idempotency_key: Unique key for idempotent creation
        app_fee_cents: Marketplace share collected by the platform
        reference_id: Our purchase id, echoed back in webhooks
        buyer_email: Payer email for Square receipts
    """

    source_id: str
    amount_cents: int
    currency: str
    idempotency_key: str
    app_fee_cents: int = 0
    reference_id: str | None = None
    buyer_email: str | None = None

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.source_id:
            raise ValueError("source_id is required")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")


@dataclass
class CreateRefundParams:
    """
    Parameters for refunding a payment.

    Attributes:
        payment_id: Square payment to refund
        amount_cents: Amount to return
        currency: ISO 4217 code
        idempotency_key: Unique key for idempotent creation
        reason: Free-text reason shown in the Square dashboard
    """

    payment_id: str
    amount_cents: int
    currency: str
    idempotency_key: str
    reason: str = ""

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if not self.payment_id:
            raise ValueError("payment_id is required")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")


@dataclass
class PaymentResult:
    """
    Result from Square payment operations.

    Attributes:
        id: Square payment id
        status: APPROVED, PENDING, COMPLETED, CANCELED or FAILED
        amount_cents: Charged amount
        currency: Currency code
        processing_fee_cents: Fee Square took, when already known
        customer_id: Square customer id, if any
        raw_response: Full payment object (for debugging)
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    processing_fee_cents: int | None = None
    customer_id: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class RefundResult:
    """
    Result from Square refund operations.

    Attributes:
        id: Square refund id
        status: PENDING, COMPLETED, REJECTED or FAILED
        amount_cents: Refunded amount
        currency: Currency code
        payment_id: Refunded payment
        raw_response: Full refund object (for debugging)
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    payment_id: str
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Square API calls.

    Square caps keys at 45 characters, so entity ids are used directly only
    when they fit; composite keys are hashed.
    """

    @staticmethod
    def for_payment(purchase_id: uuid.UUID | str) -> str:
        """
        Key for charging a purchase.

        One key per purchase: a retried charge for the same purchase
        can never take money twice.
        """
        return str(purchase_id)[:SQUARE_MAX_IDEMPOTENCY_KEY_LENGTH]

    @staticmethod
    def for_refund(refund_id: uuid.UUID | str, attempted_at_ms: int | None = None) -> str:
        """
        Key for one refund submission attempt.

        Derived from the refund id and the attempt time. The hash is salted
        with SECRET_KEY and truncated so the key stays within Square's limit.

        Returns:
            Key like "refund:3f2a...": 39 characters
        """
        if attempted_at_ms is None:
            attempted_at_ms = int(time.time() * 1000)
        hash_input = f"refund:{refund_id}:{attempted_at_ms}:{settings.SECRET_KEY}"
        return f"refund:{hashlib.sha256(hash_input.encode()).hexdigest()[:32]}"


# =============================================================================
# Square Adapter
# =============================================================================


class SquareAdapter:
    """
    Adapter for Square REST API operations.

    Instances hold only configuration and an HTTP session; they are safe to
    share between Celery workers threads.

    Args:
        access_token: Square access token
        location_id: Location charged by create_payment
        environment: "sandbox" or "production"
        timeout_seconds: Bound on every HTTP call
        session: Optional requests.Session (tests pass a mock)
    """

    def __init__(
        self,
        access_token: str,
        location_id: str,
        environment: str = "sandbox",
        timeout_seconds: float = 10,
        session: requests.Session | None = None,
    ):
        self.access_token = access_token
        self.location_id = location_id
        self.base_url = SQUARE_BASE_URLS.get(environment, SQUARE_BASE_URLS["sandbox"])
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls) -> SquareAdapter:
        """Build an adapter from SQUARE_* settings."""
        return cls(
            access_token=settings.SQUARE_ACCESS_TOKEN,
            location_id=settings.SQUARE_LOCATION_ID,
            environment=settings.SQUARE_ENVIRONMENT,
            timeout_seconds=settings.SQUARE_API_TIMEOUT_SECONDS,
        )

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Core Operations
    # =========================================================================

    def create_payment(
        self,
        params: CreatePaymentParams,
        trace_id: str | None = None,
    ) -> PaymentResult:
        """
        Charge a card nonce.

        Args:
            params: Parameters for the payment
            trace_id: Optional trace ID for log correlation

        Returns:
            PaymentResult with the payment status

        Raises:
            ProcessorRequestError: Card declined or invalid parameters
            ProcessorRateLimitError / ProcessorUnavailableError /
            ProcessorTimeoutError: Transient failures
        """
        body: dict[str, Any] = {
            "idempotency_key": params.idempotency_key,
            "source_id": params.source_id,
            "amount_money": {"amount": params.amount_cents, "currency": params.currency},
            "location_id": self.location_id,
            "autocomplete": True,
        }
        if params.app_fee_cents > 0:
            body["app_fee_money"] = {
                "amount": params.app_fee_cents,
                "currency": params.currency,
            }
        if params.reference_id:
            body["reference_id"] = params.reference_id
        if params.buyer_email:
            body["buyer_email_address"] = params.buyer_email

        log_context = {
            "operation": "create_payment",
            "amount_cents": params.amount_cents,
            "currency": params.currency,
            "idempotency_key": params.idempotency_key,
            "trace_id": trace_id,
        }
        data = self._post("/v2/payments", body, log_context)
        payment = data.get("payment", {})

        return PaymentResult(
            id=payment.get("id", ""),
            status=payment.get("status", ""),
            amount_cents=payment.get("amount_money", {}).get("amount", params.amount_cents),
            currency=payment.get("amount_money", {}).get("currency", params.currency),
            processing_fee_cents=processing_fee_cents(payment),
            customer_id=payment.get("customer_id"),
            raw_response=payment,
        )

    def create_refund(
        self,
        params: CreateRefundParams,
        trace_id: str | None = None,
    ) -> RefundResult:
        """
        Refund (part of) a payment.

        Args:
            params: Parameters for the refund
            trace_id: Optional trace ID for log correlation

        Returns:
            RefundResult with the refund id and status

        Raises:
            ProcessorRequestError: Payment not refundable or invalid parameters
            ProcessorRateLimitError / ProcessorUnavailableError /
            ProcessorTimeoutError: Transient failures
        """
        body = {
            "idempotency_key": params.idempotency_key,
            "amount_money": {"amount": params.amount_cents, "currency": params.currency},
            "payment_id": params.payment_id,
            "reason": params.reason[:192],
        }
        log_context = {
            "operation": "create_refund",
            "payment_id": params.payment_id,
            "amount_cents": params.amount_cents,
            "idempotency_key": params.idempotency_key,
            "trace_id": trace_id,
        }
        data = self._post("/v2/refunds", body, log_context)
        refund = data.get("refund", {})

        return RefundResult(
            id=refund.get("id", ""),
            status=refund.get("status", ""),
            amount_cents=refund.get("amount_money", {}).get("amount", params.amount_cents),
            currency=refund.get("amount_money", {}).get("currency", params.currency),
            payment_id=refund.get("payment_id", params.payment_id),
            raw_response=refund,
        )

    # =========================================================================
    # HTTP
    # =========================================================================

    def _post(
        self,
        path: str,
        body: dict[str, Any],
        log_context: dict[str, Any],
    ) -> dict[str, Any]:
        """POST to Square, returning the decoded body or raising a processor error."""
        logger = self.get_logger()
        start_time = time.time()
        logger.info("Starting Square operation", extra=log_context)

        try:
            response = self.session.post(
                f"{self.base_url}{path}",
                json=body,
                headers={
                    "Authorization": f"Bearer {self.access_token}",
                    "Square-Version": SQUARE_API_VERSION,
                    "Content-Type": "application/json",
                },
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.Timeout as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Square request timed out",
                extra={**log_context, "duration_ms": duration_ms},
            )
            raise ProcessorTimeoutError(
                "Square request timed out. Please retry.",
                processor_code="timeout",
            ) from e
        except requests.exceptions.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Connection error to Square",
                extra={**log_context, "duration_ms": duration_ms},
                exc_info=True,
            )
            raise ProcessorUnavailableError(
                "Could not connect to Square. Please retry.",
                processor_code="connection_error",
            ) from e

        duration_ms = (time.time() - start_time) * 1000
        if response.status_code >= 400:
            self._handle_error_response(response, log_context, duration_ms)

        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                "Square returned a non-JSON success response",
                extra={
                    **log_context,
                    "duration_ms": duration_ms,
                    "http_status": response.status_code,
                },
            )
            raise ProcessorUnavailableError(
                "Square returned an unreadable response. Please retry.",
                processor_code="invalid_response",
                http_status=response.status_code,
            ) from e

        logger.info(
            "Square operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return data

    def _handle_error_response(
        self,
        response: requests.Response,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate a Square error response into a paywall exception.

        Raises:
            ProcessorRateLimitError: 429
            ProcessorUnavailableError: 5xx
            ProcessorRequestError: Any other 4xx
        """
        logger = self.get_logger()
        status = response.status_code
        try:
            errors = response.json().get("errors", [])
        except ValueError:
            errors = []
        first = errors[0] if errors else {}
        code = first.get("code")
        detail = first.get("detail") or f"Square returned HTTP {status}"
        log_context = {
            **log_context,
            "duration_ms": duration_ms,
            "http_status": status,
            "processor_code": code,
        }

        if status == 429:
            logger.warning("Rate limited by Square", extra=log_context)
            raise ProcessorRateLimitError(
                "Square rate limit exceeded. Please retry.",
                processor_code=code or "rate_limited",
                http_status=status,
            )

        if status >= 500:
            logger.error("Square API error", extra=log_context)
            raise ProcessorUnavailableError(
                "Square service error. Please retry.",
                processor_code=code,
                http_status=status,
            )

        if status in (401, 403):
            logger.critical("Square authentication failed - check access token", extra=log_context)
        else:
            logger.error("Invalid request to Square", extra=log_context)
        raise ProcessorRequestError(detail, processor_code=code, http_status=status)


def processing_fee_cents(payment: dict[str, Any]) -> int | None:
    """
    Sum the processing_fee entries Square reports on a payment object.

    Returns None when Square has not reported fees yet.
    """
    fees = payment.get("processing_fee") or []
    if not fees:
        return None
    return sum(int(fee.get("amount_money", {}).get("amount", 0)) for fee in fees)


__all__ = [
    "CreatePaymentParams",
    "CreateRefundParams",
    "IdempotencyKeyGenerator",
    "PaymentProcessorError",
    "PaymentResult",
    "RefundResult",
    "SquareAdapter",
    "processing_fee_cents",
]
