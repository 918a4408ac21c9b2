"""
Example: Healing a drifted selector

Loads a page whose submit button was renamed and covered by a cookie banner,
then clicks it through the stale-handle guard using the old selector.
"""

import asyncio

from playwright.async_api import async_playwright

from web_healer import ElementMetadata, ElementReference, ResolutionOrchestrator, StaleHandleGuard
from web_healer.config import load_config
from web_healer.drivers import PlaywrightDriver
from web_healer.utils import setup_logging

PAGE = """
<div class="cookie-banner" style="position:fixed;inset:0;background:#0008">
  <button class="close" onclick="this.parentElement.remove()">Accept</button>
</div>
<form><button id="submit-button" type="button">Submit</button></form>
"""


async def main():
    """Run the healing example."""
    settings = load_config()
    setup_logging(settings.logging.level)

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=settings.browser.headless)
        page = await browser.new_page()
        await page.set_content(PAGE)

        orchestrator = ResolutionOrchestrator.from_settings(PlaywrightDriver(page), settings)
        guard = StaleHandleGuard(orchestrator)

        ref = ElementReference("#submit-btn", ElementMetadata(visible_text="Submit"))
        outcome = await guard.with_healing(orchestrator.driver.click, ref)
        outcome.raise_for_error()

        print(f"Clicked via {outcome.result.used_selector.expression} (healed={outcome.healed})")
        print(f"Stats: {orchestrator.stats.as_dict()}")

        await browser.close()


if __name__ == "__main__":
    asyncio.run(main())
