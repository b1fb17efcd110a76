"""
Square webhook signature verification.

Square signs each notification with HMAC-SHA256 over the notification URL
followed by the raw body, base64-encodes the digest and sends it in the
``x-square-hmacsha256-signature`` header.

The verification bypass (PAYWALL_SKIP_WEBHOOK_VALIDATION) exists for local
webhook replay only; ``from_settings`` refuses it unless DEBUG is on.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging

from django.conf import settings

from paywall.exceptions import WebhookSignatureError

SIGNATURE_HEADER = "x-square-hmacsha256-signature"

logger = logging.getLogger(__name__)


class SquareSignatureVerifier:
    """
    Verifies Square webhook signatures.

    Args:
        signature_key: Webhook subscription signature key
        notification_url: URL registered with Square; used instead of the
            request URL when set (proxies rewrite the request URL)
        skip_validation: Accept everything (local replay only)
    """

    def __init__(
        self,
        signature_key: str,
        notification_url: str | None = None,
        skip_validation: bool = False,
    ):
        self.signature_key = signature_key
        self.notification_url = notification_url
        self.skip_validation = skip_validation

    @classmethod
    def from_settings(cls) -> SquareSignatureVerifier:
        skip = settings.PAYWALL_SKIP_WEBHOOK_VALIDATION
        if skip and not settings.DEBUG:
            logger.error(
                "PAYWALL_SKIP_WEBHOOK_VALIDATION ignored because DEBUG is off",
            )
            skip = False
        return cls(
            signature_key=settings.SQUARE_WEBHOOK_SIGNATURE_KEY,
            notification_url=settings.SQUARE_WEBHOOK_URL or None,
            skip_validation=skip,
        )

    def compute(self, body: bytes, url: str) -> str:
        """Expected signature for a body delivered to url."""
        digest = hmac.new(
            self.signature_key.encode(),
            url.encode() + body,
            hashlib.sha256,
        ).digest()
        return base64.b64encode(digest).decode()

    def is_valid(self, body: bytes, signature: str | None, request_url: str | None) -> bool:
        if self.skip_validation:
            return True
        url = self.notification_url or request_url
        if not (body and signature and url and self.signature_key):
            return False
        return hmac.compare_digest(self.compute(body, url), signature)

    def verify(self, body: bytes, signature: str | None, request_url: str | None) -> None:
        """
        Raises:
            WebhookSignatureError: Signature missing or wrong
        """
        if not self.is_valid(body, signature, request_url):
            logger.warning(
                "Webhook signature verification failed",
                extra={"has_signature": bool(signature), "request_url": request_url},
            )
            raise WebhookSignatureError("Invalid webhook signature")
