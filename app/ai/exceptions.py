"""
AI-specific exceptions for credential resolution and provider calls.

Every exception raised while driving a generation is caught by the run
orchestrator, which fails the run and writes the message text into the
thread transcript. Messages are therefore written for the end user.

Exception Hierarchy:
    AIError (base for the AI domain)
    ├── CredentialError - API key lookup or decryption failures
    │   ├── CredentialNotFoundError - No key stored for the provider
    │   ├── ClientDecryptionRequiredError - Key is client-encrypted, no plaintext supplied
    │   └── CredentialDecryptionError - Server-side decryption failed
    └── ProviderError - Transport failures talking to a provider
        ├── ProviderHTTPError - Non-2xx response
        └── ProviderResponseError - Malformed or empty response body

Usage:
    from ai.exceptions import CredentialNotFoundError

    raise CredentialNotFoundError(
        "No API Key found for openai",
        details={"provider": "openai"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ExternalServiceError, NotFoundError

if TYPE_CHECKING:
    from typing import Any


class AIError(BaseApplicationError):
    """Base exception for the AI domain."""

    default_error_code: str = "AI_ERROR"


# =============================================================================
# Credential Exceptions
# =============================================================================


class CredentialError(AIError):
    """Base exception for provider API key resolution."""

    default_error_code: str = "CREDENTIAL_ERROR"


class CredentialNotFoundError(CredentialError, NotFoundError):
    """Raised when the thread owner has no stored key for the provider."""

    default_error_code: str = "CREDENTIAL_NOT_FOUND"


class ClientDecryptionRequiredError(CredentialError):
    """
    Raised when the stored key was encrypted on the client (``v2:``).

    The server holds no key material for this format. The caller must
    decrypt it locally and pass the plaintext with the request.
    """

    default_error_code: str = "CLIENT_DECRYPTION_REQUIRED"


class CredentialDecryptionError(CredentialError):
    """Raised when a server-encrypted key (``v1:``) cannot be decrypted."""

    default_error_code: str = "CREDENTIAL_DECRYPTION_FAILED"


# =============================================================================
# Provider Exceptions
# =============================================================================


class ProviderError(AIError, ExternalServiceError):
    """
    Raised when a provider call fails below the HTTP layer.

    Covers connection errors, timeouts and interrupted streams.
    """

    default_error_code: str = "PROVIDER_ERROR"


class ProviderHTTPError(ProviderError):
    """
    Raised when a provider answers with a non-2xx status.

    The response body is kept in the message, since it usually holds the
    provider's own explanation (quota exceeded, invalid key, ...).
    """

    default_error_code: str = "PROVIDER_HTTP_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.status_code = status_code
        details = {**(details or {}), "status_code": status_code}
        super().__init__(message, error_code=error_code, details=details)


class ProviderResponseError(ProviderError):
    """Raised when a provider response cannot be parsed or carries no content."""

    default_error_code: str = "PROVIDER_RESPONSE_ERROR"
