"""
Driver Interface - Abstract base class for browser driver bindings.

This module defines the capability set the resolution engine needs from a
browser binding (Playwright, Selenium, raw CDP). The engine only talks to
this contract and never to binding-specific types.

Handles returned by the locate methods are opaque: the engine passes them
back to evaluate()/click()/type() but never inspects them.

Example:
    >>> from web_healer.drivers import PlaywrightDriver
    >>> driver = PlaywrightDriver(page)
    >>> handle = await driver.locate_by_css("#submit", timeout_ms=2000)
    >>> if handle is not None:
    ...     await driver.click(handle)
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from web_healer.config.settings import BrowserSettings
    from web_healer.engine.models import CandidateSelector


# Lower-cased fragments of stale-handle error messages across bindings
STALE_ERROR_PATTERNS = (
    "stale element",
    "not attached to the dom",
    "not attached to the page",
    "detached",
    "removed from document",
    "execution context was destroyed",
    "jshandle is disposed",
    "elementhandle is disposed",
)


class IDriverAdapter(ABC):
    """
    Abstract interface over one browser page/session.

    Implementations must be usable from a single asyncio task; the engine
    never issues overlapping calls against the same adapter.
    """

    @property
    @abstractmethod
    def url(self) -> str:
        """Get the current page URL."""
        ...

    async def current_url(self) -> str:
        """
        Read the current page URL without blocking the event loop.

        Bindings whose URL lookup is a remote call override this.
        """
        return self.url

    @abstractmethod
    async def locate_by_css(self, expression: str, timeout_ms: float) -> Optional[Any]:
        """
        Wait up to timeout_ms for a CSS selector to match.

        Args:
            expression: CSS selector
            timeout_ms: Maximum time to wait in milliseconds

        Returns:
            An element handle, or None if nothing matched in time
        """
        ...

    @abstractmethod
    async def locate_by_xpath(self, expression: str, timeout_ms: float) -> Optional[Any]:
        """
        Wait up to timeout_ms for an XPath expression to match.

        Args:
            expression: XPath expression
            timeout_ms: Maximum time to wait in milliseconds

        Returns:
            An element handle, or None if nothing matched in time
        """
        ...

    @abstractmethod
    async def evaluate(self, script: str, arg: Any = None) -> Any:
        """
        Run a JavaScript function in the page.

        Args:
            script: A JavaScript function expression, e.g. "(el) => el.tagName"
            arg: Single argument passed to the function (may be a handle)

        Returns:
            The function's (awaited) return value
        """
        ...

    @abstractmethod
    async def click(self, handle: Any) -> None:
        """Click a located element."""
        ...

    @abstractmethod
    async def type(self, handle: Any, text: str) -> None:
        """Replace the element's value with text."""
        ...

    @abstractmethod
    async def hover(self, handle: Any) -> None:
        """Move the pointer over a located element."""
        ...

    async def locate(self, candidate: "CandidateSelector", timeout_ms: float) -> Optional[Any]:
        """Dispatch a candidate to the locate method matching its kind."""
        from web_healer.engine.models import SelectorKind

        if candidate.kind == SelectorKind.XPATH:
            return await self.locate_by_xpath(candidate.expression, timeout_ms)
        return await self.locate_by_css(candidate.expression, timeout_ms)

    def is_stale_error(self, error: BaseException) -> bool:
        """
        Tell whether an error means the handle was invalidated by a DOM change.

        Bindings with a dedicated exception type should extend this check.
        """
        from web_healer.exceptions import StaleElementError

        if isinstance(error, StaleElementError):
            return True
        message = str(error).lower()
        return any(pattern in message for pattern in STALE_ERROR_PATTERNS)

    @classmethod
    def open(cls, browser: "BrowserSettings", url: str) -> AsyncContextManager["IDriverAdapter"]:
        """
        Launch a browser session on url and wrap it in this binding.

        Used by the CLI, which picks the binding by name from the driver
        registry. The session is closed when the context exits.

        Raises:
            DriverError: If the binding cannot start its own session
        """
        from web_healer.exceptions import DriverError

        raise DriverError(f"{cls.__name__} cannot open its own browser session")
