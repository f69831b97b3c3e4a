"""
Core infrastructure shared by the domain apps.

Services (import from core.services):
    - ServiceResult: Success/failure wrapper for expected outcomes
    - BaseService: Logging and transaction helpers

Exceptions (import from core.exceptions):
    - BaseApplicationError and its generic subclasses

Note:
    Models and model mixins are NOT imported here because they depend on
    Django's app registry being ready. Import them directly:
        from core.models import BaseModel
        from core.model_mixins import UUIDPrimaryKeyMixin
"""

from .exceptions import (
    BaseApplicationError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)
from .services import BaseService, ServiceResult

__all__ = [
    # Services
    "BaseService",
    "ServiceResult",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "ExternalServiceError",
]
