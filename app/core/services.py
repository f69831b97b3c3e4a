"""
Base service layer patterns for business logic encapsulation.

This module provides:
- ServiceResult: Result wrapper for expected failures (rejections, business rules)
- BaseService: Base class with logging and transaction helpers

Views handle HTTP concerns, models handle data, services handle logic.
Expected failures travel as ServiceResult; unexpected ones are raised.

Usage:
    from core.services import BaseService, ServiceResult

    class ThreadService(BaseService):
        @classmethod
        def rename(cls, thread, title: str) -> ServiceResult[Thread]:
            if not title.strip():
                return ServiceResult.failure("Title is required", error_code="EMPTY_TITLE")

            with cls.atomic():
                thread.title = title
                thread.save(update_fields=["title", "updated_at"])

            cls.get_logger().info("Renamed thread", extra={"thread_id": str(thread.id)})
            return ServiceResult.success(thread)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

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
        errors: Field-level errors for validation failures

    Usage:
        result = RunOrchestrator.submit(thread_id, user, "Hello", SenderKind.OWNER)
        if result:
            outcome = result.data
        else:
            print(f"Rejected: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying ``data``."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Example:
            result = RunOrchestrator.drain(thread_id)
            if not result:
                return Response(result.to_response(), status=400)
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services are stateless: use @classmethod and pass every input
    (including the acting user) explicitly.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class, e.g. ``ai.services.orchestrator.RunOrchestrator``."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Nested use creates a savepoint, so an IntegrityError raised inside
        an inner block only rolls back that block.
        """
        with transaction.atomic():
            yield

