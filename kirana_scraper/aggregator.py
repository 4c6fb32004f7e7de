"""Route rendered documents to site extractors and assemble reports."""

from __future__ import annotations

import concurrent.futures
import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from .extractors import EXTRACTORS, get_extractor
from .models import ExtractionReport, SiteResult, SiteStatus
from .sites import SiteId, normalize_site_name

logger = logging.getLogger(__name__)

_LABEL_TOKENS: tuple[tuple[str, SiteId], ...] = (
    ("jiomart", SiteId.JIOMART),
    ("naturesbasket", SiteId.NATURESBASKET),
    ("dmart", SiteId.DMART),
    ("zepto", SiteId.ZEPTO),
    ("swiggy", SiteId.SWIGGY),
)

Document = Mapping[str, str | None] | tuple[str, str | None]


def site_from_label(label: str) -> SiteId | None:
    """Resolve the site a document belongs to from its label (usually a filename)."""
    token = normalize_site_name(label)
    # Earliest token wins: snapshot names lead with their site, and the
    # location or product slugs after it may name another site.
    hits = [(token.find(needle), site) for needle, site in _LABEL_TOKENS if needle in token]
    return min(hits, key=lambda hit: hit[0])[1] if hits else None


def extract_html(html: str, label: str) -> SiteResult | None:
    """Extract one document; ``None`` when the label names no known site."""
    site = site_from_label(label)
    if site is None:
        logger.warning("Unknown website for %s, skipping", label)
        return None
    return get_extractor(site).extract(html, label)


def _unpack(document: Document) -> tuple[str, str | None]:
    if isinstance(document, Mapping):
        return str(document.get("label") or ""), document.get("html")
    label, html = document
    return label, html


def extract_all(
    documents: Iterable[Document],
    product: str = "",
    location: str = "",
    max_workers: int | None = None,
) -> ExtractionReport:
    """Extract a batch of documents into one report, preserving input order.

    Documents without HTML are recorded as failed sites; unrecognized labels are
    skipped with a warning.
    """
    report = ExtractionReport(product=product, location=location)
    jobs: list[tuple[SiteId, str, str]] = []

    for document in documents:
        label, html = _unpack(document)
        site = site_from_label(label)
        if site is None:
            logger.warning("Unknown website for %s, skipping", label)
            continue
        if not html:
            report.websites.append(
                SiteStatus(website=site.display_name, success=False, error="No HTML content")
            )
            continue
        jobs.append((site, label, html))

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [
            pool.submit(EXTRACTORS[site]().extract, html, label) for site, label, html in jobs
        ]
        for (site, label, _), future in zip(jobs, futures):
            try:
                result = future.result()
            except Exception as exc:
                logger.error("Extraction failed for %s: %s", label, exc)
                report.websites.append(SiteStatus(site.display_name, False, str(exc)))
                continue
            report.data.append(result)
            report.websites.append(SiteStatus(site.display_name, True))

    return report


def extract_data_from_file(path: Path | str, label: str | None = None) -> SiteResult | None:
    """Extract one saved HTML file; the filename is the routing label by default."""
    path = Path(path)
    label = label or path.name
    try:
        html = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Error reading %s: %s", path, exc)
        return None
    return extract_html(html, label)


def extract_data_from_all_files(directory: Path | str) -> list[SiteResult]:
    """Extract every ``*.html`` file in ``directory``, in name order."""
    directory = Path(directory)
    files = sorted(directory.glob("*.html"))
    logger.info("Found %d HTML files in %s", len(files), directory)

    results = []
    for path in files:
        if (result := extract_data_from_file(path)) is not None:
            results.append(result)
    return results


def summarize_results(results: Iterable[SiteResult], samples: int = 3) -> str:
    """Human-readable summary: per site location, product count and a few samples."""
    lines = []
    for result in results:
        lines.append(f"{result.website}:")
        lines.append(f"  Location: {result.location or 'N/A'}")
        lines.append(f"  Products: {len(result.products)}")
        for product in result.products[:samples]:
            price = f"₹{product.price:g}" if product.price is not None else "N/A"
            mrp = f" (MRP ₹{product.mrp:g})" if product.mrp is not None else ""
            lines.append(f"    - {product.name}: {price}{mrp}")
    return "\n".join(lines)
