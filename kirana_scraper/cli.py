#!/usr/bin/env python3
"""CLI entry point for the multi-site grocery scraper."""

import argparse
import asyncio
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path

from .aggregator import extract_data_from_all_files, summarize_results
from .config import load_settings
from .extractors import list_sites
from .models import ExtractionReport, SiteResult, SiteStatus
from .sites import SiteId
from .storage import ResultStore


def print_results(results: list[SiteResult]) -> None:
    """Print per-site summary."""
    print(f"\n{'=' * 60}")
    print(summarize_results(results))
    print(f"{'=' * 60}")
    total = sum(len(r.products) for r in results)
    print(f"Total: {total} products from {len(results)} page(s)")


def run_extract(directory: Path, store: ResultStore, as_json: bool) -> int:
    """Extract every saved HTML page in ``directory`` and save a report."""
    if not directory.is_dir():
        print(f"Error: Directory not found: {directory}", file=sys.stderr)
        return 1

    results = extract_data_from_all_files(directory)
    if not results:
        print(f"No pages extracted from {directory}")
        return 1

    report = ExtractionReport(
        product="",
        location="",
        data=results,
        websites=[SiteStatus(r.website, True) for r in results],
    )
    if as_json:
        print(json.dumps(report.to_dict(), ensure_ascii=False, indent=2))
        return 0

    print_results(results)
    path = store.save_report(report)
    print(f"\nSaved report to {path}")
    return 0


async def run_scrape(product: str, location: str, options, store: ResultStore) -> ExtractionReport:
    """Scrape all requested sites and save the report."""
    from .orchestrator import scrape_all_sites

    sites = ", ".join(site.display_name for site in options.sites)
    print(f"\nScraping '{product}' near '{location}' on: {sites}")
    start = time.perf_counter()

    report = await scrape_all_sites(product, location, options, store=store)

    for status in report.websites:
        mark = "ok" if status.success else f"failed ({status.error})"
        print(f"  {status.website}: {mark}")
    print_results(report.data)

    path = store.save_report(report)
    elapsed = time.perf_counter() - start
    print(f"\nSaved report to {path} ({elapsed:.2f}s)")
    return report


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Grocery price scraper for Indian quick-commerce sites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m kirana_scraper.cli --list
  python -m kirana_scraper.cli --extract output/
  python -m kirana_scraper.cli --scrape lays --location "RT Nagar"
  python -m kirana_scraper.cli --scrape potato --location Mumbai --sites dmart,zepto --save-html
  python -m kirana_scraper.cli --serve
        """,
    )

    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--extract", "-x", metavar="DIR", help="Extract products from saved HTML files")
    group.add_argument("--scrape", "-s", metavar="PRODUCT", help="Scrape a product on every site")
    group.add_argument("--list", "-l", action="store_true", help="List supported sites")
    group.add_argument("--serve", action="store_true", help="Run the API server and job worker")

    parser.add_argument("--location", help="Delivery location (required with --scrape)")
    parser.add_argument("--sites", help="Comma-separated site ids (default: all)")
    parser.add_argument("--save-html", action="store_true", help="Keep rendered pages in the output dir")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument("--output-dir", type=Path, help="Where reports and HTML are saved")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON (with --extract)")

    args = parser.parse_args()
    settings = load_settings()
    if args.output_dir:
        settings = replace(settings, output_dir=args.output_dir)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.list:
        print("Supported sites:")
        for site in list_sites():
            print(f"  - {site} ({SiteId(site).display_name})")
        return 0

    if args.serve:
        import uvicorn

        from .webapp.app import create_app

        print("=" * 60)
        print(f"Starting API on http://{settings.host}:{settings.port}")
        print("Press Ctrl+C to stop")
        print("=" * 60)
        uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
        return 0

    store = ResultStore(settings.output_dir)

    if args.extract:
        return run_extract(Path(args.extract), store, args.json)

    if not args.location:
        parser.error("--location is required with --scrape")

    names = [s for s in (args.sites or "").split(",") if s.strip()]
    try:
        sites = tuple(SiteId.from_name(s) for s in names) or tuple(SiteId)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    options = settings.scrape_options(
        save_html=args.save_html,
        sites=sites,
        headless=settings.headless and not args.headful,
    )
    asyncio.run(run_scrape(args.scrape, args.location, options, store))

    print("\n" + "=" * 60)
    print("Done!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
