"""Data models for scraped listings and extraction reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, UTC


def file_timestamp(moment: datetime | None = None) -> str:
    """Return an ISO-8601 UTC timestamp safe for filenames.

    ``2025-01-01T00:00:00.000Z`` becomes ``2025-01-01T00-00-00-000Z``.
    """
    moment = moment or datetime.now(UTC)
    iso = moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return iso.replace(":", "-").replace(".", "-")


@dataclass(frozen=True)
class Product:
    """A scraped product listing."""

    name: str
    price: float | None
    mrp: float | None
    website: str

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "price": self.price,
            "mrp": self.mrp,
            "website": self.website,
        }


@dataclass(frozen=True)
class SiteResult:
    """Result of extracting one rendered HTML document."""

    website: str
    location: str | None
    products: tuple[Product, ...]
    filename: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "website": self.website,
            "location": self.location,
            "products": [p.to_dict() for p in self.products],
            "filename": self.filename,
        }


@dataclass(frozen=True)
class SiteStatus:
    """Outcome of rendering one site."""

    website: str
    success: bool
    error: str | None = None

    def to_dict(self) -> dict:
        return {"website": self.website, "success": self.success, "error": self.error}


@dataclass(frozen=True)
class FetchResult:
    """Rendered page returned by the browser layer."""

    site: str
    success: bool
    html: str | None = None
    error: str | None = None


@dataclass
class ExtractionReport:
    """Collection of site results across one scrape or extraction run."""

    product: str
    location: str
    data: list[SiteResult] = field(default_factory=list)
    websites: list[SiteStatus] = field(default_factory=list)
    timestamp: str = field(default_factory=file_timestamp)

    @property
    def total_products(self) -> int:
        return sum(len(r.products) for r in self.data)

    @property
    def summary(self) -> dict:
        """Aggregate counts, always derived from ``data`` and ``websites``."""
        successful = sum(1 for s in self.websites if s.success)
        return {
            "totalWebsites": len(self.websites),
            "successful": successful,
            "failed": len(self.websites) - successful,
            "totalProducts": self.total_products,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": True,
            "timestamp": self.timestamp,
            "product": self.product,
            "location": self.location,
            "websites": [s.to_dict() for s in self.websites],
            "data": [r.to_dict() for r in self.data],
            "summary": self.summary,
        }
