"""
Settings - Pydantic models for type-safe configuration.

This module defines all configuration settings as Pydantic models,
providing validation, type hints, and automatic environment variable loading.

Example:
    >>> from web_healer.config import Settings, load_config
    >>> settings = load_config()  # Loads from env, yaml, and defaults
    >>> print(settings.healing.max_attempts)
    3
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class HealingSettings(BaseModel):
    """
    Element resolution and remediation settings.

    Attributes:
        max_attempts: Number of passes over the candidate list per resolve()
        base_timeout_ms: Time budget of the first attempt
        adaptive_timeout: Grow the budget with each attempt
        timeout_growth: Growth factor per attempt (budget * (1 + growth * attempt))
        candidate_split: Max number of candidates the attempt budget is divided across
        min_candidate_timeout_ms: Floor for the per-candidate locate timeout
        max_candidates: Cap on the generated candidate list
        auto_dismiss_overlays: Allow overlay dismissal
        auto_scroll: Allow scrolling elements into view
        stale_element_retry: Re-resolve once when an action hits a stale handle
    """
    max_attempts: int = Field(default=3, ge=1, le=10)
    base_timeout_ms: int = Field(default=5000, ge=100, le=120000)
    adaptive_timeout: bool = True
    timeout_growth: float = Field(default=0.3, ge=0.0, le=5.0)
    candidate_split: int = Field(default=5, ge=1, le=50)
    min_candidate_timeout_ms: int = Field(default=1500, ge=0, le=60000)
    max_candidates: int = Field(default=8, ge=1, le=50)

    auto_dismiss_overlays: bool = True
    auto_scroll: bool = True
    stale_element_retry: bool = True

    # Remediation timing
    overlay_settle_ms: int = Field(default=300, ge=0, le=10000)
    scroll_settle_ms: int = Field(default=300, ge=0, le=10000)
    dom_stable_timeout_ms: int = Field(default=3000, ge=0, le=60000)
    dom_quiet_ms: int = Field(default=500, ge=0, le=10000)
    network_idle_timeout_ms: int = Field(default=5000, ge=0, le=60000)
    network_idle_quiet_ms: int = Field(default=500, ge=0, le=10000)
    network_idle_on_retry: bool = False


class MemorySettings(BaseModel):
    """
    Selector memory settings.

    Attributes:
        capacity: Entry count above which eviction kicks in
        cleanup_interval: Run eviction every N resolve() calls
        knowledge_base_path: Optional JSON file for durable learning
    """
    capacity: int = Field(default=100, ge=2, le=100000)
    cleanup_interval: int = Field(default=25, ge=1, le=10000)
    knowledge_base_path: Optional[str] = None


class BrowserSettings(BaseModel):
    """
    Browser settings used by the CLI.

    Attributes:
        engine: Driver binding to use
        headless: Run browser in headless mode
        browser_type: Playwright browser type
        viewport_width: Browser viewport width in pixels
        viewport_height: Browser viewport height in pixels
    """
    engine: Literal["playwright", "selenium"] = "playwright"
    headless: bool = True
    browser_type: Literal["chromium", "firefox", "webkit"] = "chromium"
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)
    navigation_timeout_ms: int = Field(default=30000, ge=1000, le=300000)


class LoggingSettings(BaseModel):
    """
    Logging configuration.

    Attributes:
        level: Log level
        file: Log file path (None for console only)
        json_format: Use JSON format for the file handler
    """
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    file: Optional[str] = None
    json_format: bool = False


class Settings(BaseSettings):
    """
    Root settings container - single source of truth for all configuration.

    Settings are loaded in this priority order (highest to lowest):
    1. Explicit values passed to constructor
    2. Config file (YAML), passed in as constructor values by ConfigLoader
    3. Environment variables (prefixed with WEB_HEALER__)
    4. Default values

    Example:
        >>> settings = Settings()  # Load from env vars
        >>> settings = Settings(healing=HealingSettings(max_attempts=5))  # Override
    """

    model_config = SettingsConfigDict(
        env_prefix="WEB_HEALER__",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    healing: HealingSettings = Field(default_factory=HealingSettings)
    memory: MemorySettings = Field(default_factory=MemorySettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    debug: bool = False

    def merge_with(self, overrides: dict) -> "Settings":
        """
        Create a new Settings instance with overrides applied.

        Args:
            overrides: Dictionary of values to override

        Returns:
            New Settings instance with overrides applied
        """
        current = self.model_dump()

        def deep_merge(base: dict, updates: dict) -> dict:
            for key, value in updates.items():
                if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                    deep_merge(base[key], value)
                else:
                    base[key] = value
            return base

        merged = deep_merge(current, overrides)
        return Settings(**merged)
