"""Render every requested site, extract each page and build one report."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from .config import ScrapeOptions
from .extractors import get_extractor
from .models import ExtractionReport, FetchResult, SiteStatus, file_timestamp
from .sites import SiteId
from .storage import ResultStore

logger = logging.getLogger(__name__)

Fetcher = Callable[[SiteId, str, str, ScrapeOptions], Awaitable[FetchResult]]


async def _default_fetcher(
    site: SiteId, product: str, location: str, options: ScrapeOptions
) -> FetchResult:
    # Imported lazily so extraction-only use never loads Playwright.
    from .fetchers import fetch_rendered_page

    return await fetch_rendered_page(site, product, location, options)


async def scrape_all_sites(
    product: str,
    location: str,
    options: ScrapeOptions | None = None,
    *,
    fetcher: Fetcher | None = None,
    store: ResultStore | None = None,
) -> ExtractionReport:
    """Scrape ``product`` near ``location`` on every site in ``options.sites``.

    Site visits run concurrently up to ``options.max_concurrency``. A failed
    visit is recorded under ``websites`` and never aborts the others. With
    ``options.save_html`` and a ``store``, rendered pages are also saved.
    """
    options = options or ScrapeOptions()
    fetcher = fetcher or _default_fetcher
    timestamp = file_timestamp()
    semaphore = asyncio.Semaphore(max(1, options.max_concurrency))

    async def visit(site: SiteId) -> FetchResult:
        async with semaphore:
            try:
                return await fetcher(site, product, location, options)
            except Exception as exc:
                logger.error("[%s] Fetch failed: %s", site.display_name, exc)
                return FetchResult(site=site.value, success=False, error=str(exc))

    logger.info("Scraping %r near %r on %d sites", product, location, len(options.sites))
    async with asyncio.TaskGroup() as tg:
        tasks = [tg.create_task(visit(site)) for site in options.sites]

    report = ExtractionReport(product=product, location=location, timestamp=timestamp)
    for site, task in zip(options.sites, tasks):
        fetched = task.result()
        if not fetched.success or not fetched.html:
            report.websites.append(
                SiteStatus(site.display_name, False, fetched.error or "No HTML content")
            )
            continue

        label = f"{site.value}-{product}-{location}"
        if options.save_html and store is not None:
            label = store.save_html(site, product, location, fetched.html, timestamp).name

        result = await asyncio.to_thread(get_extractor(site).extract, fetched.html, label)
        logger.info("[%s] %d products", site.display_name, len(result.products))
        report.data.append(result)
        report.websites.append(SiteStatus(site.display_name, True))

    return report
