"""
Playwright Driver - Implementation of IDriverAdapter using Playwright.

Wraps an async Playwright ``Page``. Handles are Playwright ElementHandles.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, TYPE_CHECKING
import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from web_healer.exceptions import DriverError
from web_healer.interfaces.driver import IDriverAdapter

if TYPE_CHECKING:
    from web_healer.config.settings import BrowserSettings

logger = logging.getLogger(__name__)


class PlaywrightDriver(IDriverAdapter):
    """
    Playwright implementation of IDriverAdapter.

    Example:
        >>> async with async_playwright() as p:
        ...     browser = await p.chromium.launch()
        ...     page = await browser.new_page()
        ...     driver = PlaywrightDriver(page)
        ...     handle = await driver.locate_by_css("#login", timeout_ms=2000)
    """

    def __init__(self, page: Any):
        """
        Initialize the driver wrapper.

        Args:
            page: Playwright Page object
        """
        self._page = page

    @classmethod
    @asynccontextmanager
    async def open(cls, browser: "BrowserSettings", url: str) -> AsyncIterator["PlaywrightDriver"]:
        """Launch browser_type, open a page sized to the viewport and navigate to url."""
        async with async_playwright() as p:
            launcher = getattr(p, browser.browser_type)
            try:
                instance = await launcher.launch(headless=browser.headless)
            except PlaywrightError as e:
                raise DriverError(
                    f"Failed to launch {browser.browser_type}: {e}",
                    {"hint": "playwright install " + browser.browser_type},
                ) from e

            try:
                page = await instance.new_page(viewport={
                    "width": browser.viewport_width,
                    "height": browser.viewport_height,
                })
                await page.goto(url, timeout=browser.navigation_timeout_ms)
                logger.debug(f"Playwright page opened on {url}")
                yield cls(page)
            finally:
                await instance.close()

    @property
    def page(self) -> Any:
        return self._page

    @property
    def url(self) -> str:
        """Get current URL."""
        return self._page.url

    async def _wait_for(self, selector: str, timeout_ms: float) -> Optional[Any]:
        try:
            return await self._page.wait_for_selector(
                selector,
                timeout=timeout_ms,
                state="attached",
            )
        except PlaywrightTimeoutError:
            return None

    async def locate_by_css(self, expression: str, timeout_ms: float) -> Optional[Any]:
        """Wait for a CSS match."""
        return await self._wait_for(f"css={expression}", timeout_ms)

    async def locate_by_xpath(self, expression: str, timeout_ms: float) -> Optional[Any]:
        """Wait for an XPath match."""
        return await self._wait_for(f"xpath={expression}", timeout_ms)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """Execute a JavaScript function in the page."""
        if arg is None:
            return await self._page.evaluate(script)
        return await self._page.evaluate(script, arg)

    async def click(self, handle: Any) -> None:
        """Click element."""
        await handle.click()

    async def type(self, handle: Any, text: str) -> None:
        """Fill element."""
        await handle.fill(text)

    async def hover(self, handle: Any) -> None:
        """Hover over element."""
        await handle.hover()

    def is_stale_error(self, error: BaseException) -> bool:
        # Detached handles surface as a generic Error; timeouts can quote
        # "attached"/"detached" wait states and are never staleness
        if isinstance(error, PlaywrightTimeoutError):
            return False
        return super().is_stale_error(error)
