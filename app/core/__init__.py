"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the catalog, paywall and playback apps.
No business logic lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - OptimisticVersionMixin: Atomic version counter on update

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - BadRequestError: Business rule rejections
    - UnauthorizedError: Failed authenticity checks
    - NotFoundError: Resource not found
    - ExternalServiceError: Third-party service failures

Views (import from core.views):
    - health_check: Liveness/readiness probe
    - application_exception_handler: DRF EXCEPTION_HANDLER

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService, ServiceResult

# Exceptions (no Django dependencies)
from .exceptions import (
    BadRequestError,
    BaseApplicationError,
    ExternalServiceError,
    NotFoundError,
    UnauthorizedError,
)

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "BadRequestError",
    "UnauthorizedError",
    "NotFoundError",
    "ExternalServiceError",
]
