"""
Selenium Driver - Implementation of IDriverAdapter using Selenium WebDriver.

Selenium's API is blocking, so every call is pushed to a worker thread with
asyncio.to_thread() to keep the event loop free. Handles are WebElements.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, TYPE_CHECKING

from selenium.common.exceptions import (
    StaleElementReferenceException,
    TimeoutException,
    WebDriverException,
)
from selenium.webdriver import Chrome, ChromeOptions, Firefox, FirefoxOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from web_healer.exceptions import DriverError
from web_healer.interfaces.driver import IDriverAdapter

if TYPE_CHECKING:
    from web_healer.config.settings import BrowserSettings

logger = logging.getLogger(__name__)


def start_webdriver(browser: "BrowserSettings") -> Any:
    """Start a local Chrome or Firefox session through Selenium Manager."""
    if browser.browser_type == "chromium":
        options = ChromeOptions()
        if browser.headless:
            options.add_argument("--headless=new")
        options.add_argument(f"--window-size={browser.viewport_width},{browser.viewport_height}")
        webdriver = Chrome(options=options)
    elif browser.browser_type == "firefox":
        options = FirefoxOptions()
        if browser.headless:
            options.add_argument("-headless")
        webdriver = Firefox(options=options)
        webdriver.set_window_size(browser.viewport_width, browser.viewport_height)
    else:
        raise DriverError(
            f"Unsupported browser for Selenium: {browser.browser_type}",
            {"supported": ["chromium", "firefox"]},
        )
    webdriver.set_page_load_timeout(browser.navigation_timeout_ms / 1000)
    webdriver.implicitly_wait(0)
    return webdriver


class SeleniumDriver(IDriverAdapter):
    """
    Selenium implementation of IDriverAdapter.

    Example:
        >>> from selenium import webdriver
        >>> driver = SeleniumDriver(webdriver.Chrome())
        >>> handle = await driver.locate_by_xpath("//button", timeout_ms=2000)
    """

    def __init__(self, webdriver: Any):
        """
        Initialize the driver wrapper.

        Args:
            webdriver: Selenium WebDriver instance
        """
        self._driver = webdriver

    @classmethod
    @asynccontextmanager
    async def open(cls, browser: "BrowserSettings", url: str) -> AsyncIterator["SeleniumDriver"]:
        """Start a WebDriver session, load url, and quit the session on exit."""
        try:
            webdriver = await asyncio.to_thread(start_webdriver, browser)
        except WebDriverException as e:
            raise DriverError(f"Failed to start {browser.browser_type} WebDriver: {e.msg}") from e

        try:
            await asyncio.to_thread(webdriver.get, url)
            logger.debug(f"Selenium session opened on {url}")
            yield cls(webdriver)
        finally:
            await asyncio.to_thread(webdriver.quit)

    @property
    def webdriver(self) -> Any:
        return self._driver

    @property
    def url(self) -> str:
        """Get current URL."""
        return self._driver.current_url

    async def current_url(self) -> str:
        return await asyncio.to_thread(lambda: self._driver.current_url)

    def _wait_for(self, by: str, expression: str, timeout_ms: float) -> Optional[Any]:
        try:
            return WebDriverWait(self._driver, timeout_ms / 1000).until(
                EC.presence_of_element_located((by, expression))
            )
        except TimeoutException:
            return None

    async def locate_by_css(self, expression: str, timeout_ms: float) -> Optional[Any]:
        """Wait for a CSS match."""
        return await asyncio.to_thread(self._wait_for, By.CSS_SELECTOR, expression, timeout_ms)

    async def locate_by_xpath(self, expression: str, timeout_ms: float) -> Optional[Any]:
        """Wait for an XPath match."""
        return await asyncio.to_thread(self._wait_for, By.XPATH, expression, timeout_ms)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """
        Execute a JavaScript function in the page.

        The function expression is invoked with arguments[0]; WebDriver
        waits for returned promises to settle.
        """
        wrapped = f"return ({script})(arguments[0]);"
        return await asyncio.to_thread(self._driver.execute_script, wrapped, arg)

    async def click(self, handle: Any) -> None:
        """Click element."""
        await asyncio.to_thread(handle.click)

    async def type(self, handle: Any, text: str) -> None:
        """Clear the element and type text."""
        def _type() -> None:
            handle.clear()
            handle.send_keys(text)

        await asyncio.to_thread(_type)

    async def hover(self, handle: Any) -> None:
        """Hover over element."""
        from selenium.webdriver.common.action_chains import ActionChains

        await asyncio.to_thread(
            lambda: ActionChains(self._driver).move_to_element(handle).perform()
        )

    def is_stale_error(self, error: BaseException) -> bool:
        if isinstance(error, StaleElementReferenceException):
            return True
        return super().is_stale_error(error)
