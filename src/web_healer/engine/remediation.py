"""
Environment Remediator - non-destructive fixes for located-but-blocked elements.

Operations:
- dismiss_overlays: close or hide cookie banners, modals, chat widgets
- scroll_into_view: centre an off-screen element
- wait_for_dom_stable: wait until the DOM stops mutating
- wait_for_network_idle: wait until fetch/XHR traffic drains

Every operation is best-effort. A failure is wrapped in
EnvironmentRemediationError, logged, kept on ``last_error`` and treated as
"no effect" - it never reaches the caller.
"""

import asyncio
import logging
from typing import Any, Optional

from web_healer.engine.events import DiagnosticsEmitter, OverlaysDismissedEvent
from web_healer.exceptions import EnvironmentRemediationError
from web_healer.interfaces.driver import IDriverAdapter

logger = logging.getLogger(__name__)

# Python-side slack on top of an in-page wait's own timeout
WAIT_GRACE_SECONDS = 1.0


DISMISS_OVERLAYS_JS = r'''
() => {
    let dismissed = 0;

    const overlaySelectors = [
        '[class*="overlay"]', '[class*="modal"]', '[class*="popup"]',
        '[class*="dialog"]', '[class*="banner"]', '[class*="notification"]',
        '[role="dialog"]', '[role="alertdialog"]',
        '.intercom-messenger', '#intercom-container',
        '[class*="cookie"]', '[class*="consent"]',
        '[class*="chat-widget"]', '[class*="chatbot"]'
    ];

    const closeSelectors = [
        '[class*="close"]', '[aria-label*="close"]', '[aria-label*="Close"]',
        '[class*="dismiss"]', '.close-btn', '[data-dismiss]', '[data-close]'
    ];

    const handled = new Set();
    for (const sel of overlaySelectors) {
        for (const overlay of document.querySelectorAll(sel)) {
            if (handled.has(overlay)) continue;
            handled.add(overlay);

            const style = window.getComputedStyle(overlay);
            const fixed = style.position === 'fixed';
            // offsetParent is null for fixed elements, so check those by style
            const shown = fixed
                ? style.display !== 'none' && style.visibility !== 'hidden'
                : overlay.offsetParent !== null;
            if (!shown) continue;

            let closed = false;
            for (const closeSel of closeSelectors) {
                const closeBtn = overlay.querySelector(closeSel);
                if (closeBtn) {
                    closeBtn.click();
                    closed = true;
                    break;
                }
            }

            if (closed) {
                dismissed++;
            } else if (fixed) {
                overlay.style.display = 'none';
                dismissed++;
            }
        }
    }
    return dismissed;
}
'''


SCROLL_INTO_VIEW_JS = r'''
(el) => {
    const rect = el.getBoundingClientRect();
    const viewportHeight = window.innerHeight || document.documentElement.clientHeight;
    const viewportWidth = window.innerWidth || document.documentElement.clientWidth;
    const outside = rect.top < 0 || rect.bottom > viewportHeight ||
        rect.left < 0 || rect.right > viewportWidth;
    if (!outside) return false;
    el.scrollIntoView({ behavior: 'smooth', block: 'center', inline: 'center' });
    return true;
}
'''


DOM_STABLE_JS = r'''
({ timeoutMs, quietMs }) => new Promise((resolve) => {
    const root = document.body || document.documentElement;
    let quietTimer = null;
    let done = false;

    const finish = (stable) => {
        if (done) return;
        done = true;
        observer.disconnect();
        clearTimeout(quietTimer);
        clearTimeout(deadline);
        resolve(stable);
    };

    const observer = new MutationObserver(() => {
        clearTimeout(quietTimer);
        quietTimer = setTimeout(() => finish(true), quietMs);
    });
    observer.observe(root, { childList: true, subtree: true, attributes: true });

    quietTimer = setTimeout(() => finish(true), quietMs);
    const deadline = setTimeout(() => finish(false), timeoutMs);
})
'''


NETWORK_IDLE_JS = r'''
({ timeoutMs, quietMs }) => new Promise((resolve) => {
    if (!window.__webHealerNetwork) {
        const state = { pending: 0 };
        window.__webHealerNetwork = state;

        if (window.fetch) {
            const originalFetch = window.fetch;
            window.fetch = function (...args) {
                state.pending++;
                return originalFetch.apply(this, args).finally(() => { state.pending--; });
            };
        }

        const originalSend = XMLHttpRequest.prototype.send;
        XMLHttpRequest.prototype.send = function (...args) {
            state.pending++;
            this.addEventListener('loadend', () => { state.pending--; }, { once: true });
            return originalSend.apply(this, args);
        };
    }

    const state = window.__webHealerNetwork;
    const started = Date.now();
    let idleSince = state.pending === 0 ? Date.now() : null;

    const poll = setInterval(() => {
        const now = Date.now();
        if (state.pending <= 0) {
            if (idleSince === null) idleSince = now;
            if (now - idleSince >= quietMs) {
                clearInterval(poll);
                resolve(true);
                return;
            }
        } else {
            idleSince = null;
        }
        if (now - started >= timeoutMs) {
            clearInterval(poll);
            resolve(false);
        }
    }, 50);
})
'''


class EnvironmentRemediator:
    """
    Best-effort corrective actions against one page.

    Usage:
        remediator = EnvironmentRemediator(driver)
        count = await remediator.dismiss_overlays()
        if count:
            await remediator.settle()
    """

    def __init__(
        self,
        driver: IDriverAdapter,
        events: Optional[DiagnosticsEmitter] = None,
        auto_dismiss_overlays: bool = True,
        auto_scroll: bool = True,
        overlay_settle_ms: int = 300,
        scroll_settle_ms: int = 300,
    ):
        self.driver = driver
        self.events = events
        self.auto_dismiss_overlays = auto_dismiss_overlays
        self.auto_scroll = auto_scroll
        self.overlay_settle_ms = overlay_settle_ms
        self.scroll_settle_ms = scroll_settle_ms
        self.last_error: Optional[EnvironmentRemediationError] = None

    def _record_failure(self, operation: str, error: object) -> None:
        self.last_error = EnvironmentRemediationError(
            f"{operation} failed: {error}", operation=operation,
        )
        logger.warning(str(self.last_error))

    async def dismiss_overlays(self) -> int:
        """
        Close or hide visible overlays.

        Returns:
            Number of overlays dismissed (0 when disabled or on failure)
        """
        if not self.auto_dismiss_overlays:
            return 0

        try:
            count = int(await self.driver.evaluate(DISMISS_OVERLAYS_JS) or 0)
        except Exception as e:
            self._record_failure("dismiss_overlays", e)
            return 0

        if count > 0:
            logger.info(f"Dismissed {count} overlay(s)")
            if self.events is not None:
                self.events.emit(OverlaysDismissedEvent(count=count))
        return count

    async def settle(self) -> None:
        """Short fixed delay that lets the page reflow after dismissals."""
        if self.overlay_settle_ms > 0:
            await asyncio.sleep(self.overlay_settle_ms / 1000)

    async def scroll_into_view(self, handle: Any) -> bool:
        """
        Centre the element if it lies outside the viewport.

        Returns:
            True if a scroll was issued
        """
        if not self.auto_scroll:
            return False

        try:
            scrolled = bool(await self.driver.evaluate(SCROLL_INTO_VIEW_JS, handle))
        except Exception as e:
            self._record_failure("scroll_into_view", e)
            return False

        if scrolled and self.scroll_settle_ms > 0:
            # Smooth scrolling is animated
            await asyncio.sleep(self.scroll_settle_ms / 1000)
        return scrolled

    async def wait_for_dom_stable(self, timeout_ms: int, quiet_ms: int = 500) -> bool:
        """
        Wait until no DOM mutation happened for quiet_ms, or timeout_ms elapsed.

        Returns:
            True if the DOM went quiet, False on timeout or failure
        """
        return await self._bounded_wait("wait_for_dom_stable", DOM_STABLE_JS, timeout_ms, quiet_ms)

    async def wait_for_network_idle(self, timeout_ms: int, quiet_ms: int = 500) -> bool:
        """
        Wait until no fetch/XHR request was in flight for quiet_ms, or timeout_ms elapsed.

        Only requests issued after the first call on a page are tracked.

        Returns:
            True if the network went idle, False on timeout or failure
        """
        return await self._bounded_wait("wait_for_network_idle", NETWORK_IDLE_JS, timeout_ms, quiet_ms)

    async def _bounded_wait(self, operation: str, script: str, timeout_ms: int, quiet_ms: int) -> bool:
        if timeout_ms <= 0:
            return False

        arg = {"timeoutMs": timeout_ms, "quietMs": min(quiet_ms, timeout_ms)}
        try:
            result = await asyncio.wait_for(
                self.driver.evaluate(script, arg),
                timeout=timeout_ms / 1000 + WAIT_GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            self._record_failure(operation, f"page did not answer within {timeout_ms}ms")
            return False
        except Exception as e:
            self._record_failure(operation, e)
            return False

        if not result:
            logger.debug(f"{operation} timed out after {timeout_ms}ms")
        return bool(result)
