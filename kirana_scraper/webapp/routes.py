"""FastAPI routes for the JSON API."""

import asyncio
from datetime import datetime, UTC
from pathlib import Path

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..aggregator import extract_data_from_all_files
from ..config import Settings
from ..job_queue import JobQueue
from ..models import ExtractionReport, SiteStatus
from ..sites import SiteId, normalize_site_name
from ..storage import REPORT_PREFIX, ResultStore

router = APIRouter(prefix="/api")

SCRAPE_EXAMPLE = {"product": "lays", "location": "RT Nagar"}


class ScrapeRequest(BaseModel):
    product: str | None = None
    location: str | None = None
    sites: list[str] | None = None
    saveHtml: bool = False


def get_store(request: Request) -> ResultStore:
    return request.app.state.store


def get_queue(request: Request) -> JobQueue:
    return request.app.state.queue


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _latest(store: ResultStore) -> tuple[Path, dict]:
    """Latest saved report, or a 404."""
    path = store.latest_report_path()
    if path is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": "No extracted data found",
                "message": "Run a scrape or POST /api/refresh first to generate data",
            },
        )
    report = store.load_report(path)
    if report is None:
        raise HTTPException(
            status_code=500,
            detail={"error": "Failed to load data", "message": f"Could not parse {path.name}"},
        )
    return path, report


def _report_timestamp(path: Path) -> str:
    return path.stem.removeprefix(REPORT_PREFIX)


def _entries(report: dict) -> list[dict]:
    data = report.get("data")
    return data if isinstance(data, list) else []


def _product_count(entries: list[dict]) -> int:
    return sum(len(entry.get("products") or []) for entry in entries)


def _resolve_sites(names: list[str] | None) -> tuple[SiteId, ...]:
    if not names:
        return tuple(SiteId)
    try:
        return tuple(dict.fromkeys(SiteId.from_name(name) for name in names))
    except ValueError as e:
        raise HTTPException(status_code=400, detail={"success": False, "error": str(e)})


def _enqueue_scrape(
    request: Request,
    product: str | None,
    location: str | None,
    sites: list[str] | None,
    save_html: bool,
) -> JSONResponse:
    product = (product or "").strip()
    location = (location or "").strip()
    if not product or not location:
        raise HTTPException(
            status_code=400,
            detail={
                "success": False,
                "error": "Both product and location are required",
                "example": SCRAPE_EXAMPLE,
            },
        )

    options = get_settings(request).scrape_options(
        save_html=save_html,
        sites=_resolve_sites(sites),
    )
    queue = get_queue(request)
    site_ids = [site.value for site in options.sites]

    # Reuse an identical query that is already queued or running
    job = queue.get_active_job(product, location, site_ids)
    job_id = job["id"] if job else queue.enqueue(product, location, options, source="api")
    status = job["status"] if job else "pending"

    return JSONResponse(
        {
            "success": True,
            "jobId": job_id,
            "status": status,
            "statusUrl": f"/api/jobs/{job_id}",
            "product": product,
            "location": location,
            "sites": site_ids,
        },
        status_code=202,
    )


# --- Service info ---


@router.get("/health")
async def health():
    return {"status": "ok", "message": "Kirana scraper API is running", "timestamp": _now()}


@router.get("/info")
async def info(request: Request):
    """Describe the API and the supported websites."""
    return {
        "name": request.app.title,
        "version": request.app.version,
        "endpoints": {
            "GET /api/health": "Health check",
            "GET /api/info": "API information",
            "GET|POST /api/scrape": "Queue a scrape (product, location, sites?, saveHtml?)",
            "GET /api/jobs": "Queue status and recent jobs",
            "GET /api/jobs/{job_id}": "Job status and report",
            "GET /api/extract?dir=": "Extract products from saved HTML files",
            "GET /api/data": "Latest extracted data",
            "GET /api/data/website/{website}": "Latest data for one website",
            "GET /api/data/search?q=&website=&location=": "Search latest data",
            "GET /api/websites": "Websites in latest data",
            "GET /api/stats": "Statistics for latest data",
            "POST /api/refresh": "Re-extract saved HTML into a new report",
        },
        "supportedWebsites": [
            {"id": site.value, "name": site.display_name} for site in SiteId
        ],
    }


# --- Scrape jobs ---


@router.get("/scrape")
async def scrape_get(
    request: Request,
    product: str | None = None,
    location: str | None = None,
    sites: str | None = None,
    saveHtml: bool = False,
):
    """Queue a scrape job from query parameters (``sites`` is comma separated)."""
    site_names = [s for s in (sites or "").split(",") if s.strip()] or None
    return _enqueue_scrape(request, product, location, site_names, saveHtml)


@router.post("/scrape")
async def scrape_post(request: Request, body: ScrapeRequest):
    """Queue a scrape job."""
    return _enqueue_scrape(request, body.product, body.location, body.sites, body.saveHtml)


@router.get("/jobs")
async def list_jobs(request: Request, limit: int = Query(default=20, ge=1, le=200)):
    queue = get_queue(request)
    worker = request.app.state.worker
    return {
        "success": True,
        "queue": queue.get_queue_status(),
        "worker": worker.get_status() if worker else None,
        "jobs": queue.list_jobs(limit=limit),
    }


@router.get("/jobs/{job_id}")
async def job_status(request: Request, job_id: str):
    job = get_queue(request).get_job(job_id)
    if job is None:
        raise HTTPException(
            status_code=404,
            detail={"error": "Job not found", "message": f"No job with id '{job_id}'"},
        )
    return {"success": True, "job": job}


# --- Extraction from saved HTML ---


@router.get("/extract")
async def extract_directory(request: Request, dir: str | None = None):
    """Extract products from every HTML file in a directory (default: output dir)."""
    directory = Path(dir) if dir else get_settings(request).output_dir
    if not directory.is_dir():
        raise HTTPException(
            status_code=404,
            detail={"success": False, "error": f"Directory not found: {directory}"},
        )

    results = await asyncio.to_thread(extract_data_from_all_files, directory)
    return {
        "success": True,
        "timestamp": _now(),
        "directory": str(directory),
        "data": [r.to_dict() for r in results],
        "summary": {
            "totalFiles": len(results),
            "totalProducts": sum(len(r.products) for r in results),
        },
    }


@router.post("/refresh")
async def refresh(request: Request):
    """Re-extract the output directory's HTML into a new saved report."""
    store = get_store(request)
    results = []
    if store.output_dir.is_dir():
        results = await asyncio.to_thread(extract_data_from_all_files, store.output_dir)
    if not results:
        raise HTTPException(
            status_code=404,
            detail={
                "error": "No data extracted",
                "message": "No HTML files found or extraction failed",
            },
        )

    report = ExtractionReport(
        product="",
        location="",
        data=results,
        websites=[SiteStatus(r.website, True) for r in results],
    )
    path = store.save_report(report)
    return {
        "success": True,
        "message": "Data refreshed successfully",
        "timestamp": report.timestamp,
        "filename": path.name,
        "count": len(results),
        "data": [r.to_dict() for r in results],
    }


# --- Latest saved data ---


@router.get("/data")
@router.get("/data/latest")
async def latest_data(request: Request):
    path, report = _latest(get_store(request))
    entries = _entries(report)
    return {
        "timestamp": _report_timestamp(path),
        "filename": path.name,
        "data": entries,
        "count": len(entries),
    }


@router.get("/data/website/{website}")
async def data_by_website(request: Request, website: str):
    path, report = _latest(get_store(request))
    wanted = normalize_site_name(website)
    filtered = [e for e in _entries(report) if normalize_site_name(e.get("website", "")) == wanted]
    return {
        "website": website,
        "timestamp": _report_timestamp(path),
        "data": filtered,
        "count": len(filtered),
    }


@router.get("/data/search")
async def search_data(
    request: Request,
    q: str | None = None,
    website: str | None = None,
    location: str | None = None,
):
    """Filter latest data by website, location substring and product name substring."""
    path, report = _latest(get_store(request))
    results = _entries(report)

    if website:
        wanted = normalize_site_name(website)
        results = [e for e in results if normalize_site_name(e.get("website", "")) == wanted]

    if location:
        needle = location.lower()
        results = [e for e in results if e.get("location") and needle in e["location"].lower()]

    if q:
        needle = q.lower()
        results = [
            {**e, "products": [p for p in e.get("products") or [] if needle in p["name"].lower()]}
            for e in results
        ]
        results = [e for e in results if e["products"]]

    return {
        "query": q,
        "website": website,
        "location": location,
        "timestamp": _report_timestamp(path),
        "data": results,
        "count": len(results),
        "totalProducts": _product_count(results),
    }


@router.get("/websites")
async def websites(request: Request):
    path, report = _latest(get_store(request))
    entries = _entries(report)

    names = list(dict.fromkeys(e.get("website") for e in entries))
    stats = []
    for name in names:
        site_entries = [e for e in entries if e.get("website") == name]
        stats.append(
            {
                "website": name,
                "count": len(site_entries),
                "totalProducts": _product_count(site_entries),
                "locations": list(dict.fromkeys(e["location"] for e in site_entries if e.get("location"))),
            }
        )
    return {"timestamp": _report_timestamp(path), "websites": stats, "total": len(names)}


@router.get("/stats")
async def stats(request: Request):
    path, report = _latest(get_store(request))
    entries = _entries(report)

    def counts(products: list[dict]) -> tuple[int, int]:
        with_price = sum(1 for p in products if p.get("price") is not None)
        with_mrp = sum(1 for p in products if p.get("mrp") is not None)
        return with_price, with_mrp

    by_website: dict[str, dict] = {}
    for entry in entries:
        products = entry.get("products") or []
        with_price, with_mrp = counts(products)
        site = by_website.setdefault(
            entry.get("website"),
            {"entries": 0, "products": 0, "productsWithPrice": 0, "productsWithMRP": 0},
        )
        site["entries"] += 1
        site["products"] += len(products)
        site["productsWithPrice"] += with_price
        site["productsWithMRP"] += with_mrp

    return {
        "timestamp": _report_timestamp(path),
        "totalEntries": len(entries),
        "totalProducts": _product_count(entries),
        "websites": len(by_website),
        "productsWithPrice": sum(s["productsWithPrice"] for s in by_website.values()),
        "productsWithMRP": sum(s["productsWithMRP"] for s in by_website.values()),
        "byWebsite": by_website,
    }
