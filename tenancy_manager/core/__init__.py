"""
Core Libraries

Shared constants, data models, configuration and utilities for the Tenancy
Manager.
"""

from .config import ConfigManager, ManagerConfig
from .exceptions import (
    TenancyError, NotFoundError, ForbiddenError, BadRequestError, ConflictError,
    AlreadyExistsError, InternalError, ConfigurationError, MappingError, OwnershipConflictError
)
from .utils import setup_logging, disable_ssl_warnings, validate_name

__all__ = [
    'ConfigManager',
    'ManagerConfig',
    'TenancyError',
    'NotFoundError',
    'ForbiddenError',
    'BadRequestError',
    'ConflictError',
    'AlreadyExistsError',
    'InternalError',
    'ConfigurationError',
    'MappingError',
    'OwnershipConflictError',
    'setup_logging',
    'disable_ssl_warnings',
    'validate_name',
]
