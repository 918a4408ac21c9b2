"""
Drivers module - browser binding implementations.
"""

from web_healer.drivers.playwright_driver import PlaywrightDriver
from web_healer.drivers.registry import DriverRegistry

__all__ = [
    "PlaywrightDriver",
    "DriverRegistry",
    "register_drivers",
]


def register_drivers() -> None:
    """Register driver implementations with the registry."""
    # Register Playwright (eager)
    if "playwright" not in DriverRegistry.list_drivers():
        DriverRegistry.register_driver("playwright")(PlaywrightDriver)

    # Register Selenium (lazy - only loads when needed)
    def selenium_factory():
        from web_healer.drivers.selenium_driver import SeleniumDriver
        return SeleniumDriver

    DriverRegistry.register_driver_factory("selenium", selenium_factory)


# Auto-register on import
register_drivers()
