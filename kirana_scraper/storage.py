"""Flat-file store for reports and raw HTML snapshots."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from .models import ExtractionReport, file_timestamp
from .sites import SiteId
from .utils import slugify

logger = logging.getLogger(__name__)

REPORT_PREFIX = "extracted-data-"


class ResultStore:
    """Reports as ``extracted-data-<timestamp>.json`` and HTML snapshots, in one directory."""

    def __init__(self, output_dir: Path | str):
        self.output_dir = Path(output_dir)

    def save_report(self, report: ExtractionReport | dict) -> Path:
        """Write a report; returns the file path."""
        data = report.to_dict() if isinstance(report, ExtractionReport) else report
        timestamp = data.get("timestamp") or file_timestamp()

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"{REPORT_PREFIX}{timestamp}.json"
        path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        logger.info("Saved report to %s", path)
        return path

    def list_reports(self) -> list[Path]:
        """Saved report files, oldest first."""
        if not self.output_dir.is_dir():
            return []
        return sorted(self.output_dir.glob(f"{REPORT_PREFIX}*.json"))

    def latest_report_path(self) -> Path | None:
        reports = self.list_reports()
        return reports[-1] if reports else None

    def load_report(self, path: Path) -> dict | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Error reading report %s: %s", path, exc)
            return None
        return data if isinstance(data, dict) else None

    def latest_report(self) -> dict | None:
        """The most recent readable report, or ``None``."""
        for path in reversed(self.list_reports()):
            if (data := self.load_report(path)) is not None:
                return data
        return None

    def save_html(
        self,
        site: SiteId,
        product: str,
        location: str,
        html: str,
        timestamp: str | None = None,
    ) -> Path:
        """Save a rendered page as ``<site>-<location>-<product>-<timestamp>.html``.

        The site token leads the name so the file routes back to its extractor.
        """
        timestamp = timestamp or file_timestamp()
        name = f"{site.value}-{slugify(location)}-{slugify(product)}-{timestamp}.html"

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / name
        path.write_text(html, encoding="utf-8")
        logger.info("Saved HTML snapshot to %s", path)
        return path
