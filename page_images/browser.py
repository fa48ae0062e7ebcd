"""Shared Chromium handle and page rendering helpers."""

from __future__ import annotations

import asyncio
import logging
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

from .config import BrowserSettings, ScrapeConfig, Viewport

logger = logging.getLogger("page_images")

# Resolves once the accumulated scroll distance reaches the body height, which
# is re-read on every tick because lazy content can grow the page.
SCROLL_SCRIPT = """
([distance, delay]) => new Promise((resolve) => {
  let totalHeight = 0;
  const timer = setInterval(() => {
    const scrollHeight = document.body ? document.body.scrollHeight : 0;
    window.scrollBy(0, distance);
    totalHeight += distance;
    if (totalHeight >= scrollHeight) {
      clearInterval(timer);
      resolve(totalHeight);
    }
  }, delay);
})
"""


class SharedBrowser:
    """Process-wide Chromium instance, launched on first use and reused afterwards.

    Pages opened on the shared browser each get their own context, so
    concurrent scrapes do not see each other's viewport or user agent.
    """

    def __init__(self, settings: Optional[BrowserSettings] = None) -> None:
        self.settings = settings
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._lock = asyncio.Lock()
        self._shutdown_task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "SharedBrowser":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def started(self) -> bool:
        return self._browser is not None

    async def get(self) -> Browser:
        """Return the running browser, launching it if needed."""
        async with self._lock:
            if self._browser is not None and self._browser.is_connected():
                return self._browser
            settings = self.settings or BrowserSettings.from_env()
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            logger.info(
                "Launching Chromium (production=%s, executable=%s)",
                settings.production,
                settings.executable_path or "bundled",
            )
            self._browser = await self._playwright.chromium.launch(
                **settings.launch_options()
            )
            return self._browser

    async def close(self) -> None:
        """Close the browser and stop Playwright. Safe to call repeatedly."""
        async with self._lock:
            try:
                if self._browser is not None:
                    try:
                        await self._browser.close()
                    finally:
                        self._browser = None
                    logger.info("Browser closed")
            finally:
                if self._playwright is not None:
                    try:
                        await self._playwright.stop()
                    finally:
                        self._playwright = None

    def install_signal_handlers(self) -> None:
        """Close the browser on SIGINT/SIGTERM, then let the signal take its default course."""
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._handle_signal, sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handlers are not supported on this platform")
                return

    def _handle_signal(self, sig: signal.Signals) -> None:
        if self._shutdown_task is None or self._shutdown_task.done():
            self._shutdown_task = asyncio.ensure_future(self._on_signal(sig))

    async def _on_signal(self, sig: signal.Signals) -> None:
        logger.info("%s received, closing browser...", sig.name)
        try:
            await self.close()
        finally:
            asyncio.get_running_loop().remove_signal_handler(sig)
            signal.raise_signal(sig)


async def scroll_to_bottom(page: Page, config: ScrapeConfig) -> int:
    """Scroll in fixed steps until the bottom of the page; returns the distance covered."""
    return await page.evaluate(
        SCROLL_SCRIPT,
        [config.scroll_step, int(config.scroll_interval * 1000)],
    )


@asynccontextmanager
async def render(
    browser: Browser,
    url: str,
    viewport: Viewport,
    config: ScrapeConfig,
) -> AsyncIterator[Page]:
    """Open ``url`` under ``viewport``, wait for it to settle and scroll through it.

    The page is closed when the block exits, whether or not loading succeeded.
    """
    page = await browser.new_page(
        viewport={"width": viewport.width, "height": viewport.height},
        user_agent=viewport.user_agent,
    )
    try:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + config.navigation_timeout
        logger.info(
            "Loading %s (%s %dx%d)", url, viewport.name, viewport.width, viewport.height
        )
        await page.goto(
            url,
            wait_until="domcontentloaded",
            timeout=config.navigation_timeout * 1000,
        )
        remaining = max(deadline - loop.time(), 0.001)
        await page.wait_for_load_state("networkidle", timeout=remaining * 1000)
        if config.wait_after_load:
            await page.wait_for_timeout(int(config.wait_after_load * 1000))
        distance = await scroll_to_bottom(page, config)
        logger.debug("Scrolled %dpx on %s viewport", distance or 0, viewport.name)
        yield page
    finally:
        await page.close()
