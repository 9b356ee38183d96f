"""
Exceptions Module

Error taxonomy shared by the Resource Store, the visibility filter and the
controllers. API errors mirror the reasons of a Kubernetes ``Status`` object.
"""

from typing import Optional


class TenancyError(Exception):
    """Base exception for all Tenancy Manager errors"""

    status_code: int = 500
    reason: str = "InternalError"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class NotFoundError(TenancyError):
    """Object is absent, or present but invisible to the caller"""

    status_code = 404
    reason = "NotFound"

    def __init__(self, kind: str, name: str, message: Optional[str] = None):
        super().__init__(message or f'{kind} "{name}" not found')
        self.kind = kind
        self.name = name


class ForbiddenError(TenancyError):
    """Caller is a member but lacks ownership for a mutating operation"""

    status_code = 403
    reason = "Forbidden"

    def __init__(self, kind: str, name: str, message: str):
        super().__init__(f'{kind} "{name}" is forbidden: {message}')
        self.kind = kind
        self.name = name


class BadRequestError(TenancyError):
    """Structurally invalid request"""

    status_code = 400
    reason = "BadRequest"


class ConflictError(TenancyError):
    """Stale resource version on update"""

    status_code = 409
    reason = "Conflict"


class OwnershipConflictError(ConflictError):
    """Object is already controlled by another owner"""


class AlreadyExistsError(TenancyError):
    """Create of an object whose name is already taken"""

    status_code = 409
    reason = "AlreadyExists"


class InternalError(TenancyError):
    """Store or transport failure"""

    status_code = 500
    reason = "InternalError"


class ConfigurationError(TenancyError):
    """Raised when configuration is invalid or cannot be loaded"""


class MappingError(TenancyError):
    """Raised when a secondary-watch mapping function cannot compute its requests"""
