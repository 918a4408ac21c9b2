"""
Configuration module - Centralized settings management.

This module provides type-safe configuration management using Pydantic,
supporting environment variables, YAML files, and explicit overrides.

Usage:
    from web_healer.config import get_settings, load_config

    # Get global settings (loaded once)
    settings = get_settings()

    # Or load fresh settings with overrides
    settings = load_config(healing={"max_attempts": 5})

Environment Variables:
    WEB_HEALER__HEALING__MAX_ATTEMPTS=5
    WEB_HEALER__HEALING__BASE_TIMEOUT_MS=8000
    WEB_HEALER__MEMORY__KNOWLEDGE_BASE_PATH=~/.web-healer/kb.json
"""

from web_healer.config.settings import (
    Settings,
    HealingSettings,
    MemorySettings,
    BrowserSettings,
    LoggingSettings,
)
from web_healer.config.loader import ConfigLoader, load_config

# Global settings singleton
_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get the global settings instance (singleton).

    Settings are loaded once from environment variables and config files.
    Call reset_settings() to reload.

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def reset_settings() -> None:
    """Reset the global settings (forces reload on next get_settings())."""
    global _settings
    _settings = None


__all__ = [
    "Settings",
    "HealingSettings",
    "MemorySettings",
    "BrowserSettings",
    "LoggingSettings",
    "ConfigLoader",
    "load_config",
    "get_settings",
    "reset_settings",
]
