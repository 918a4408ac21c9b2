"""
Utilities module - Common utility functions.
"""

from web_healer.utils.logging import setup_logging, get_logger, JsonFormatter

__all__ = [
    "setup_logging",
    "get_logger",
    "JsonFormatter",
]
