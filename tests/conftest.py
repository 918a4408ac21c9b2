"""
Pytest configuration and fixtures.
"""

import logging

import pytest

from fakes import FakeDriver


@pytest.fixture
def healing_settings():
    """Healing settings with every settle delay disabled."""
    from web_healer.config import HealingSettings

    return HealingSettings(
        max_attempts=3,
        base_timeout_ms=1000,
        overlay_settle_ms=0,
        scroll_settle_ms=0,
        dom_stable_timeout_ms=100,
        network_idle_timeout_ms=100,
    )


@pytest.fixture
def settings(healing_settings):
    """Provide test settings."""
    from web_healer.config import Settings, BrowserSettings

    return Settings(
        healing=healing_settings,
        browser=BrowserSettings(engine="playwright", headless=True),
    )


@pytest.fixture
def driver():
    """An empty fake page on app.example.com."""
    return FakeDriver()


@pytest.fixture
def orchestrator(driver, healing_settings):
    """Orchestrator over the fake page with a private memory."""
    from web_healer.engine import ResolutionOrchestrator, SelectorMemory

    return ResolutionOrchestrator(driver, settings=healing_settings, memory=SelectorMemory())


@pytest.fixture(autouse=True)
def _reset_global_settings():
    """Keep the settings singleton from leaking between tests."""
    from web_healer.config import reset_settings

    reset_settings()
    yield
    reset_settings()


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """setup_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
