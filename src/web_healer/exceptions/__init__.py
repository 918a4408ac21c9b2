"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout Web Healer,
providing clear error types for different failure scenarios.
"""

from web_healer.exceptions.base import (
    WebHealerError,
    ConfigurationError,
    DriverError,
)
from web_healer.exceptions.resolution import (
    ResolutionError,
    ElementNotFoundError,
    InteractabilityTimeoutError,
    ResolutionTimeoutError,
    StaleElementError,
    EnvironmentRemediationError,
)

__all__ = [
    # Base exceptions
    "WebHealerError",
    "ConfigurationError",
    "DriverError",
    # Resolution exceptions
    "ResolutionError",
    "ElementNotFoundError",
    "InteractabilityTimeoutError",
    "ResolutionTimeoutError",
    "StaleElementError",
    "EnvironmentRemediationError",
]
