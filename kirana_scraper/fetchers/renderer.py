"""Render a site's search page in a real browser and return its HTML.

Each selector list in the site's ``SiteConfig`` is tried once, in order. Not
being able to pick the delivery location is logged and ignored: the page is
still returned and the extractor reports whatever location the page shows.
"""

from __future__ import annotations

import logging

from playwright.async_api import Page
from playwright_stealth import Stealth

from ..config import ScrapeOptions
from ..models import FetchResult
from ..sites import SiteConfig, SiteId, get_site_config
from .browser_pool import get_browser_context

logger = logging.getLogger(__name__)

SETTLE_MS = 3000
SUGGESTION_WAIT_MS = 2000
RESULTS_WAIT_MS = 15_000
SCROLL_ROUNDS = 3


async def fetch_rendered_page(
    site: SiteId,
    product: str,
    location: str,
    options: ScrapeOptions | None = None,
) -> FetchResult:
    """Open ``site``'s search page for ``product`` near ``location``.

    Never raises for browser or network trouble; failures come back as
    ``FetchResult(success=False, error=...)``.
    """
    options = options or ScrapeOptions()
    config = get_site_config(site)
    url = config.build_search_url(product)

    try:
        async with get_browser_context(headless=options.headless) as context:
            page = await context.new_page()
            await Stealth().apply_stealth_async(page)
            page.set_default_timeout(options.nav_timeout_ms)

            logger.info("[%s] Loading %s", config.display_name, url)
            await page.goto(url, wait_until="domcontentloaded", timeout=options.nav_timeout_ms)
            await page.wait_for_timeout(SETTLE_MS)

            if location and await _select_location(page, config, location):
                # Listings are location dependent; reload them for the new area.
                await page.goto(url, wait_until="domcontentloaded", timeout=options.nav_timeout_ms)
                await page.wait_for_timeout(SETTLE_MS)

            await _wait_for_results(page, config)
            await _scroll(page)
            html = await page.content()
    except Exception as exc:
        logger.error("[%s] Rendering failed: %s", config.display_name, exc)
        return FetchResult(site=site.value, success=False, error=str(exc))

    logger.info("[%s] Rendered %d chars", config.display_name, len(html))
    return FetchResult(site=site.value, success=True, html=html)


async def _select_location(page: Page, config: SiteConfig, location: str) -> bool:
    """One best-effort attempt: open the picker, type, choose a suggestion."""
    if not await _click_first(page, config.location_triggers):
        logger.info("[%s] No location picker found", config.display_name)
        return False

    for selector in config.location_inputs:
        try:
            field = await page.query_selector(selector)
            if not field or not await field.is_visible():
                continue
            await field.fill("")
            await field.fill(location)
            await page.wait_for_timeout(SUGGESTION_WAIT_MS)
        except Exception:
            continue

        suggestion = page.get_by_text(location, exact=False)
        try:
            # The first match is usually the typed text itself; prefer the next one.
            count = await suggestion.count()
            if count:
                await suggestion.nth(min(1, count - 1)).click()
            else:
                await field.press("Enter")
            await page.wait_for_timeout(SUGGESTION_WAIT_MS)
        except Exception as exc:
            logger.info("[%s] Could not pick location suggestion: %s", config.display_name, exc)
            return False

        logger.info("[%s] Location set to %s", config.display_name, location)
        return True

    logger.info("[%s] No location input found", config.display_name)
    return False


async def _click_first(page: Page, selectors: tuple[str, ...]) -> bool:
    for selector in selectors:
        try:
            el = await page.query_selector(selector)
            if el and await el.is_visible():
                await el.click()
                await page.wait_for_timeout(1000)
                return True
        except Exception:
            continue
    return False


async def _wait_for_results(page: Page, config: SiteConfig) -> None:
    try:
        await page.wait_for_selector(config.results_selector, timeout=RESULTS_WAIT_MS)
    except Exception:
        logger.info("[%s] Results selector not found, using page as is", config.display_name)


async def _scroll(page: Page) -> None:
    """Scroll a few screens to trigger lazy-loaded tiles."""
    for _ in range(SCROLL_ROUNDS):
        await page.evaluate("window.scrollBy(0, window.innerHeight)")
        await page.wait_for_timeout(800)
