"""
Interactability Verifier - is a located node actually actionable?

All four checks run inside a single page evaluation so the page cannot
re-render between them.
"""

import logging
from typing import Any

from web_healer.engine.models import InteractabilityReport
from web_healer.interfaces.driver import IDriverAdapter

logger = logging.getLogger(__name__)


INTERACTABILITY_JS = r'''
(el) => {
    const rect = el.getBoundingClientRect();
    const style = window.getComputedStyle(el);

    const visible = rect.width > 0 && rect.height > 0 &&
        style.display !== 'none' &&
        style.visibility !== 'hidden' &&
        style.opacity !== '0';

    const viewportHeight = window.innerHeight || document.documentElement.clientHeight;
    const viewportWidth = window.innerWidth || document.documentElement.clientWidth;
    const inViewport = rect.top < viewportHeight && rect.bottom > 0 &&
        rect.left < viewportWidth && rect.right > 0;

    // Hit-test the centre; an ancestor or descendant on top still counts as the element
    const centerX = rect.left + rect.width / 2;
    const centerY = rect.top + rect.height / 2;
    const top = document.elementFromPoint(centerX, centerY);
    const notCovered = !!top && (el === top || el.contains(top) || top.contains(el));

    const notDisabled = !el.disabled && !el.hasAttribute('aria-disabled');

    let occludingDescriptor = null;
    if (!notCovered && top) {
        const cls = typeof top.className === 'string' ? top.className.trim() : '';
        occludingDescriptor = top.tagName.toLowerCase() +
            (cls ? '.' + cls.split(/\s+/).join('.') : '');
    }

    return {
        visible,
        inViewport,
        notCovered,
        notDisabled,
        isInteractable: visible && inViewport && notCovered && notDisabled,
        occludingDescriptor,
    };
}
'''


class InteractabilityVerifier:
    """
    Determines whether a located DOM node is truly actionable.

    Usage:
        verifier = InteractabilityVerifier(driver)
        report = await verifier.check(handle)
        if not report.is_interactable:
            print(report.reasons())
    """

    def __init__(self, driver: IDriverAdapter):
        self.driver = driver

    async def check(self, handle: Any) -> InteractabilityReport:
        try:
            data = await self.driver.evaluate(INTERACTABILITY_JS, handle)
        except Exception as e:
            # Detached handles land here; StaleHandleGuard relies on this path
            stale = self.driver.is_stale_error(e)
            logger.debug(f"Interactability check failed (stale={stale}): {e}")
            return InteractabilityReport.failed(str(e), is_stale=stale)

        if not isinstance(data, dict):
            return InteractabilityReport.failed(f"unexpected check result: {data!r}")

        report = InteractabilityReport.from_script(data)
        if not report.is_interactable:
            logger.debug(f"Element not interactable: {', '.join(report.reasons())}")
        return report
