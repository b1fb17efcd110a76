"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.
    Collaborators (processor clients, notifiers, other services) are passed
    to the constructor so tests can substitute them.

Pattern Comparison:
    - ServiceResult: Use for outcomes the caller branches on (ignored events)
    - Exceptions: Use for rejections the caller must surface (core.exceptions)

Usage:
    from core.services import BaseService

    class PurchaseLedger(BaseService):
        def __init__(self, fee_calculator: FeeCalculator | None = None):
            self.fee_calculator = fee_calculator or FeeCalculator.from_settings()

        def mark_failed(self, purchase_id):
            with self.atomic():
                purchase = self._lock(purchase_id)
                purchase.fail()
                purchase.save()
            self.get_logger().info("Purchase failed", extra={...})
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed or nothing to return)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling

    Usage:
        # Handled, nothing to report
        return ServiceResult.success(None)

        # Handled, with the affected object
        return ServiceResult.success(purchase)

        # Check result
        result = processor.handle(event)
        if result:
            ...
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(success=False, error=error, error_code=error_code)

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Services hold only their injected collaborators, never request state
        - Raise core.exceptions subclasses for rejections
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Example:
            class RefundIssuer(BaseService):
                def issue_refund(self, purchase_id):
                    self.get_logger().info("Issuing refund", extra={...})
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    @contextmanager
    def atomic() -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back.

        Example:
            with self.atomic():
                purchase = Purchase.objects.select_for_update().get(id=pk)
                purchase.mark_paid(payment_id)
                purchase.save()
        """
        with transaction.atomic():
            yield
