"""
Base exception classes for application-wide error handling.

Every domain failure raised by the services derives from BaseApplicationError
so the HTTP layer can translate it into a response without knowing which
app raised it.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── BadRequestError - Business rule rejections (400)
    ├── UnauthorizedError - Authenticity checks that failed (401)
    ├── NotFoundError - Resource not found (404)
    └── ExternalServiceError - Third-party service failures (502)

Usage:
    from core.exceptions import BadRequestError, NotFoundError

    raise NotFoundError("Purchase not found", details={"purchase_id": str(pk)})

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.status_code)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, current state, etc.)
        status_code: HTTP status the API layer should answer with

    Example:
        try:
            purchase = PurchaseLedger().get_purchase(purchase_id)
        except NotFoundError as e:
            logger.warning(f"Purchase not found: {e.error_code}")
            return Response(e.to_dict(), status=e.status_code)
    """

    default_error_code: str = "APPLICATION_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and details keys

        Example:
            {
                "error": "Purchase already refunded",
                "error_code": "ALREADY_REFUNDED",
                "details": {"purchase_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class BadRequestError(BaseApplicationError):
    """
    Raised when a request is well-formed but violates a business rule.

    Use for:
    - Illegal state transitions (refunding a failed purchase)
    - Operations already performed (second refund for a purchase)
    - Policy denials (purchase not eligible for a refund)
    - Invalid input values (negative telemetry counters)

    Example:
        if purchase.status != PurchaseStatus.CREATED:
            raise BadRequestError(
                "Purchase is not awaiting payment",
                error_code="INVALID_STATE",
                details={"status": purchase.status},
            )
    """

    default_error_code: str = "BAD_REQUEST"
    status_code: int = 400


class UnauthorizedError(BaseApplicationError):
    """
    Raised when the caller could not be authenticated.

    Use for:
    - Webhook signatures that do not verify
    - Missing signature headers or signing keys

    Note:
        For user authentication use DRF's permission classes.
        This error is for machine-to-machine authenticity checks.
    """

    default_error_code: str = "UNAUTHORIZED"
    status_code: int = 401


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use for:
    - Product, purchase, entitlement or playback session lookups
    - Products that exist but are not purchasable

    Example:
        product = Product.objects.filter(id=product_id).first()
        if not product:
            raise NotFoundError(
                "Game not found",
                error_code="PRODUCT_NOT_FOUND",
                details={"product_id": str(product_id)},
            )
    """

    default_error_code: str = "NOT_FOUND"
    status_code: int = 404


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Payment processor API failures
    - Network timeouts
    - Unexpected external service responses

    Note:
        Log the original error for debugging but don't expose
        internal details to clients in production.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    status_code: int = 502
