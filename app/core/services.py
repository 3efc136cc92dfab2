"""
Base service layer patterns for business logic encapsulation.

- ServiceResult: result wrapper for expected failures (webhook handlers,
  background tasks) where raising would only be caught and logged again
- BaseService: per-service logger and transaction helper

Services encapsulate business logic separate from views and models.
Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures reported back to a caller
      that keeps going (a Celery task marking an event failed)
    - Exceptions: Use on the request path, where the view maps them to
      HTTP responses

Usage:
    from core.services import BaseService, ServiceResult

    class ReceiptService(BaseService):
        @classmethod
        def attach(cls, payment, reference: str) -> ServiceResult[Payment]:
            if payment.provider_reference:
                return ServiceResult.failure(
                    "Reference already attached",
                    error_code="REFERENCE_EXISTS",
                )

            with cls.atomic():
                payment.provider_reference = reference
                payment.save()

            cls.get_logger().info("Attached reference", extra={"payment_id": str(payment.id)})
            return ServiceResult.success(payment)
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
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling

    Usage:
        result = dispatch_webhook(webhook_event)
        if result.success:
            webhook_event.mark_processed()
        else:
            webhook_event.mark_failed(result.error)
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Domain exceptions keep their own error code; anything else falls
        back to the exception class name.
        """
        code = error_code or getattr(exc, "error_code", None)
        message = getattr(exc, "message", None) or str(exc)
        return cls(
            success=False,
            error=message,
            error_code=code or exc.__class__.__name__.upper(),
        )

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Design Notes:
        - Services hold no per-request state; collaborators (providers,
          adapters) may be injected through __init__
        - Raise domain exceptions on the request path
        - Return ServiceResult where the caller must keep going
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Named after the service class for easy filtering in logs,
        e.g. "payments.services.charge_orchestrator.ChargeOrchestrator".
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around transaction.atomic() that makes transaction
        boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
