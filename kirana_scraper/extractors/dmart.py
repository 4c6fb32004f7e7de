"""DMart extractor.

DMart is a Next.js storefront: listings usually sit in ``__NEXT_DATA__``. The
rendered grid uses ``vertical-card`` / ``stretched-card`` class prefixes and
prints amounts without the rupee glyph, so the amount selectors matter more
here than anywhere else.
"""

from __future__ import annotations

from bs4 import Tag

from ..models import SiteResult
from ..sites import SiteId
from ..utils import clean_text
from .base import BaseExtractor

# Inside a generic block, a heading or title element beats line guessing.
TITLE_SELECTORS = ("h1, h2, h3, h4, h5, h6", '[class*="title"]', '[class*="name"]')


class DMartExtractor(BaseExtractor):
    site = SiteId.DMART

    def generic_name(self, el: Tag, lines: list[str]) -> str | None:
        for selector in TITLE_SELECTORS:
            for title in el.select(selector):
                text = clean_text(title.get_text(" "))
                if self._plausible_line(text):
                    return text
        return super().generic_name(el, lines)


def extract_from_dmart(html: str, source_label: str) -> SiteResult:
    return DMartExtractor().extract(html, source_label)
