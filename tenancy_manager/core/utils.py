"""
Core Utilities

Common utility functions used across the Tenancy Manager.
"""

import logging
import re
from datetime import datetime, timezone

import urllib3

from .constants import ErrorMessages, TenancyConstants
from .exceptions import ConfigurationError


def setup_logging(debug: bool = False) -> None:
    """
    Set up logging configuration for the application.

    Args:
        debug: Enable debug logging level
    """
    level = logging.DEBUG if debug else logging.INFO

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    root_logger.addHandler(console_handler)

    # The kubernetes client logs every request at DEBUG
    for noisy in ("urllib3", "kubernetes"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if debug:
        logging.getLogger(__name__).debug("Debug mode enabled")


def disable_ssl_warnings() -> None:
    """Disable SSL warnings when skip_tls is configured"""
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)


def utc_now() -> str:
    """Current time as an RFC 3339 timestamp with second precision"""
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%SZ')


_NAME_PATTERN = re.compile(r'^[a-z0-9]([-a-z0-9]*[a-z0-9])?$')


def validate_name(name: str) -> bool:
    """
    Validate a tenant name.

    Names must be DNS labels (lowercase alphanumeric with hyphens, max 63
    chars) and must not contain the reserved project namespace separator.

    Args:
        name: Organization or Project name

    Returns:
        bool: True if the name is valid

    Raises:
        ConfigurationError: If the name is invalid
    """
    if not name or not isinstance(name, str) or len(name) > 63 or not _NAME_PATTERN.match(name):
        raise ConfigurationError(ErrorMessages.ConfigError.INVALID_NAME.format(name=name))

    if TenancyConstants.PROJECT_NAMESPACE_SEPARATOR in name:
        raise ConfigurationError(ErrorMessages.ConfigError.RESERVED_SEPARATOR.format(
            name=name, separator=TenancyConstants.PROJECT_NAMESPACE_SEPARATOR))

    return True


def add_finalizer(obj, finalizer: str) -> bool:
    """
    Add a finalizer to an object's metadata.

    Returns:
        bool: True if the finalizer list changed
    """
    if finalizer in obj.metadata.finalizers:
        return False
    obj.metadata.finalizers.append(finalizer)
    return True


def remove_finalizer(obj, finalizer: str) -> bool:
    """
    Remove a finalizer from an object's metadata.

    Returns:
        bool: True if the finalizer list changed
    """
    if finalizer not in obj.metadata.finalizers:
        return False
    obj.metadata.finalizers = [f for f in obj.metadata.finalizers if f != finalizer]
    return True
