"""
Playback-specific exceptions.

Exception Hierarchy:
    BadRequestError (core)
    ├── InvalidTelemetryError - Reported metrics failed validation
    ├── EntitlementNotUsableError - Entitlement revoked or outside its window
    └── SessionAlreadyEndedError - Session was already closed

    NotFoundError (core)
    ├── EntitlementNotFoundError - Unknown watch token
    └── PlaybackSessionNotFoundError - Unknown session
"""

from __future__ import annotations

from core.exceptions import BadRequestError, NotFoundError


class InvalidTelemetryError(BadRequestError):
    """Raised when a session summary or telemetry batch is malformed."""

    default_error_code: str = "INVALID_TELEMETRY"


class EntitlementNotUsableError(BadRequestError):
    default_error_code: str = "ENTITLEMENT_NOT_USABLE"


class SessionAlreadyEndedError(BadRequestError):
    default_error_code: str = "SESSION_ALREADY_ENDED"


class EntitlementNotFoundError(NotFoundError):
    default_error_code: str = "ENTITLEMENT_NOT_FOUND"


class PlaybackSessionNotFoundError(NotFoundError):
    default_error_code: str = "PLAYBACK_SESSION_NOT_FOUND"
