"""Shared Chromium for site visits.

Launching Chromium takes seconds; a new context takes tens of milliseconds. One
browser per headless mode stays up for the life of the process and every site
visit gets its own context, so cookies and the chosen delivery location never
leak between sites.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import async_playwright, Browser, BrowserContext, Error, Playwright

logger = logging.getLogger(__name__)

LAUNCH_ARGS = (
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
)
DEFAULT_VIEWPORT = {"width": 1920, "height": 1080}
DEFAULT_LOCALE = "en-IN"
DEFAULT_TIMEZONE = "Asia/Kolkata"


class BrowserPool:
    """Process-wide Chromium, keyed by headless mode."""

    _instance: BrowserPool | None = None
    _lock = asyncio.Lock()

    def __init__(self):
        self._playwright: Playwright | None = None
        self._browsers: dict[bool, Browser] = {}
        self._launch_lock = asyncio.Lock()

    @classmethod
    async def get_instance(cls) -> BrowserPool:
        if cls._instance is None:
            async with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    async def _browser(self, headless: bool) -> Browser:
        async with self._launch_lock:
            browser = self._browsers.get(headless)
            if browser is not None and browser.is_connected():
                return browser

            if self._playwright is None:
                self._playwright = await async_playwright().start()

            logger.info("Launching chromium (headless=%s)", headless)
            browser = await self._playwright.chromium.launch(
                headless=headless, args=list(LAUNCH_ARGS)
            )
            self._browsers[headless] = browser
            return browser

    @asynccontextmanager
    async def get_context(
        self,
        *,
        headless: bool = True,
        locale: str = DEFAULT_LOCALE,
        viewport: dict[str, int] | None = None,
    ) -> AsyncIterator[BrowserContext]:
        """A fresh context with Indian locale and timezone, closed on exit."""
        browser = await self._browser(headless)
        context = await browser.new_context(
            viewport=viewport or DEFAULT_VIEWPORT,
            locale=locale,
            timezone_id=DEFAULT_TIMEZONE,
        )
        try:
            yield context
        finally:
            await context.close()

    async def close(self) -> None:
        for headless, browser in list(self._browsers.items()):
            try:
                await browser.close()
            except Error as exc:
                logger.warning("Closing browser (headless=%s) failed: %s", headless, exc)
        self._browsers = {}
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    @classmethod
    async def shutdown(cls) -> None:
        """Close the shared browsers, if any were launched."""
        if cls._instance is not None:
            await cls._instance.close()
            cls._instance = None


@asynccontextmanager
async def get_browser_context(
    *,
    headless: bool = True,
    locale: str = DEFAULT_LOCALE,
    viewport: dict[str, int] | None = None,
) -> AsyncIterator[BrowserContext]:
    """Get a browser context from the shared pool."""
    pool = await BrowserPool.get_instance()
    async with pool.get_context(headless=headless, locale=locale, viewport=viewport) as context:
        yield context
