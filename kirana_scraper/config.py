"""Process settings (read from the environment) and per-request scrape options."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from .sites import SiteId

DEFAULT_OUTPUT_DIR = Path(__file__).parent.parent / "output"

_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw not in _FALSE_VALUES


@dataclass(frozen=True)
class Settings:
    host: str = "127.0.0.1"
    port: int = 3001
    output_dir: Path = DEFAULT_OUTPUT_DIR
    headless: bool = True
    nav_timeout_ms: int = 60_000
    max_concurrency: int = 2
    max_concurrent_jobs: int = 2
    log_level: str = "INFO"

    def scrape_options(self, **overrides) -> ScrapeOptions:
        """Options for one scrape, defaulted from these settings."""
        options = ScrapeOptions(
            headless=self.headless,
            nav_timeout_ms=self.nav_timeout_ms,
            max_concurrency=self.max_concurrency,
        )
        return replace(options, **overrides)


def load_settings() -> Settings:
    """Build settings from environment variables."""
    output_dir = os.environ.get("KIRANA_OUTPUT_DIR")
    return Settings(
        host=os.environ.get("KIRANA_HOST", "127.0.0.1"),
        port=_env_int("PORT", 3001),
        output_dir=Path(output_dir) if output_dir else DEFAULT_OUTPUT_DIR,
        headless=_env_bool("HEADLESS", True),
        nav_timeout_ms=_env_int("KIRANA_NAV_TIMEOUT_MS", 60_000),
        max_concurrency=max(1, _env_int("KIRANA_MAX_CONCURRENCY", 2)),
        max_concurrent_jobs=max(1, _env_int("KIRANA_MAX_CONCURRENT_JOBS", 2)),
        log_level=os.environ.get("KIRANA_LOG_LEVEL", "INFO").upper(),
    )


@dataclass(frozen=True)
class ScrapeOptions:
    """Options for one scrape request, passed explicitly down to the renderer."""

    save_html: bool = False
    sites: tuple[SiteId, ...] = field(default_factory=lambda: tuple(SiteId))
    headless: bool = True
    nav_timeout_ms: int = 60_000
    max_concurrency: int = 2

    def to_dict(self) -> dict:
        return {
            "saveHtml": self.save_html,
            "sites": [site.value for site in self.sites],
            "headless": self.headless,
            "navTimeoutMs": self.nav_timeout_ms,
            "maxConcurrency": self.max_concurrency,
        }

    @classmethod
    def from_dict(cls, data: dict) -> ScrapeOptions:
        return cls(
            save_html=bool(data.get("saveHtml", False)),
            sites=tuple(SiteId.from_name(s) for s in data.get("sites") or [s.value for s in SiteId]),
            headless=bool(data.get("headless", True)),
            nav_timeout_ms=int(data.get("navTimeoutMs", 60_000)),
            max_concurrency=int(data.get("maxConcurrency", 2)),
        )
