"""
Base exception classes for application-wide error handling.

Domain apps derive their own exceptions from these so that every error
carries a human-readable message plus a machine-readable code, and can be
rendered the same way by services, tasks, and views.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input rejected before any state change
    ├── NotFoundError - A required record does not exist
    └── ExternalServiceError - A third-party call failed

Usage:
    from core.exceptions import ExternalServiceError

    raise ExternalServiceError(
        "Upstream returned 502",
        error_code="UPSTREAM_FAILED",
        details={"status_code": 502},
    )

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)
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
        details: Additional error context (status codes, identifiers, etc.)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "No API Key found for openai",
                "error_code": "CREDENTIAL_NOT_FOUND",
                "details": {"provider": "openai"}
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
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """Raised when service-layer input validation fails."""

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Use for database lookups that the caller expected to succeed,
    e.g. a stored credential for a provider.
    """

    default_error_code: str = "NOT_FOUND"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Non-2xx responses from a third-party API
    - Connection errors and timeouts
    - Responses that cannot be parsed

    Example:
        raise ExternalServiceError(
            "Provider returned 429",
            error_code="PROVIDER_HTTP_ERROR",
            details={"status_code": 429, "body": response.text},
        )
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
