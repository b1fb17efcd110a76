"""
Paywall-specific exceptions.

Exception Hierarchy:
    BadRequestError (core)
    ├── InvalidStateTransitionError - Purchase transition not allowed
    ├── AlreadyRefundedError - Purchase already has a refund
    └── RefundNotEligibleError - Refund policy denied the refund

    UnauthorizedError (core)
    └── WebhookSignatureError - Webhook signature did not verify

    NotFoundError (core)
    └── PurchaseNotFoundError - Purchase lookup failed

    ExternalServiceError (core)
    └── PaymentProcessorError - Base for all Square errors
        ├── ProcessorRequestError - Rejected request (permanent)
        ├── ProcessorRateLimitError - Rate limited (transient, retry)
        ├── ProcessorUnavailableError - Network/5xx (transient, retry)
        └── ProcessorTimeoutError - Request timeout (transient, retry)

Usage:
    from paywall.exceptions import InvalidStateTransitionError

    raise InvalidStateTransitionError(
        "Cannot refund purchase in 'failed' state",
        details={"current_state": "failed", "action": "refund"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    BadRequestError,
    ExternalServiceError,
    NotFoundError,
    UnauthorizedError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Domain Exceptions
# =============================================================================


class PurchaseNotFoundError(NotFoundError):
    """Raised when a purchase lookup fails."""

    default_error_code: str = "PURCHASE_NOT_FOUND"


class InvalidStateTransitionError(BadRequestError):
    """
    Raised when a Purchase transition is not allowed from its current state.

    Webhook handlers log these and treat the event as handled, since
    providers deliver events out of order. Direct callers receive a 400.
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class AlreadyRefundedError(BadRequestError):
    """Raised when a purchase already has its one refund."""

    default_error_code: str = "ALREADY_REFUNDED"


class RefundNotEligibleError(BadRequestError):
    """Raised when the refund policy does not grant a refund."""

    default_error_code: str = "REFUND_NOT_ELIGIBLE"


class WebhookSignatureError(UnauthorizedError):
    """Raised when a webhook signature is missing or does not match."""

    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"


# =============================================================================
# Processor Exceptions
# =============================================================================


class PaymentProcessorError(ExternalServiceError):
    """
    Base exception for all Square API errors.

    Attributes:
        processor_code: Square's error code, if returned
        http_status: HTTP status of the failed call, if any
        is_retryable: Whether the same call can be retried safely

    Example:
        try:
            adapter.create_refund(params)
        except PaymentProcessorError as e:
            if e.is_retryable:
                raise self.retry(exc=e)
            raise
    """

    default_error_code: str = "PAYMENT_PROCESSOR_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        processor_code: str | None = None,
        http_status: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if processor_code:
            details["processor_code"] = processor_code
        if http_status:
            details["http_status"] = http_status
        super().__init__(message, error_code=error_code, details=details)
        self.processor_code = processor_code
        self.http_status = http_status


class ProcessorRequestError(PaymentProcessorError):
    """
    Square rejected the request (4xx other than 429).

    Covers declined cards, invalid parameters, unknown payment ids and
    authentication failures. Retrying the same call will not help.
    """

    default_error_code: str = "PROCESSOR_REQUEST_REJECTED"


class ProcessorRateLimitError(PaymentProcessorError):
    """Square answered 429; retry with backoff."""

    default_error_code: str = "PROCESSOR_RATE_LIMITED"
    is_retryable: bool = True


class ProcessorUnavailableError(PaymentProcessorError):
    """
    Square could not be reached or answered 5xx.

    Transient; retry with backoff.
    """

    default_error_code: str = "PROCESSOR_UNAVAILABLE"
    is_retryable: bool = True


class ProcessorTimeoutError(PaymentProcessorError):
    """
    Square call timed out.

    IMPORTANT: The operation may have succeeded on Square's side. Refunds
    stay unprocessed and are resubmitted by the retry sweep.
    """

    default_error_code: str = "PROCESSOR_TIMEOUT"
    is_retryable: bool = True
