"""
Shared building blocks for the payments backend.

- core.models: BaseModel (timestamps), UUIDPrimaryKeyMixin
- core.services: BaseService, ServiceResult
- core.exceptions: BaseApplicationError and its HTTP-mapped subclasses
- core.views: health_check

Models aren't re-exported here; importing them before the app registry
is ready raises AppRegistryNotReady.
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

__all__ = [
    "BaseApplicationError",
    "ConflictError",
    "ExternalServiceError",
    "NotFoundError",
    "PermissionDeniedError",
    "ValidationError",
]
