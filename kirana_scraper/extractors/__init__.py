"""Extractor registry.

One extractor per supported site, keyed by ``SiteId``. The table is fixed;
adding a site means adding a module here and a ``SiteConfig`` entry.
"""

from __future__ import annotations

from ..sites import SiteId
from .base import BaseExtractor, HtmlDocument
from .dmart import DMartExtractor, extract_from_dmart
from .jiomart import JioMartExtractor, extract_from_jiomart
from .naturesbasket import NaturesBasketExtractor, extract_from_naturesbasket
from .swiggy import SwiggyExtractor, extract_from_swiggy
from .zepto import ZeptoExtractor, extract_from_zepto

__all__ = [
    "BaseExtractor",
    "HtmlDocument",
    "EXTRACTORS",
    "get_extractor",
    "list_sites",
    "extract_from_dmart",
    "extract_from_jiomart",
    "extract_from_naturesbasket",
    "extract_from_swiggy",
    "extract_from_zepto",
]

EXTRACTORS: dict[SiteId, type[BaseExtractor]] = {
    SiteId.DMART: DMartExtractor,
    SiteId.JIOMART: JioMartExtractor,
    SiteId.NATURESBASKET: NaturesBasketExtractor,
    SiteId.ZEPTO: ZeptoExtractor,
    SiteId.SWIGGY: SwiggyExtractor,
}


def get_extractor(site: SiteId | str) -> BaseExtractor:
    """Get an extractor instance by site id or display name."""
    if not isinstance(site, SiteId):
        site = SiteId.from_name(site)
    return EXTRACTORS[site]()


def list_sites() -> list[str]:
    """List all supported site ids."""
    return [site.value for site in EXTRACTORS]
