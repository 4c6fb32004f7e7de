"""JioMart extractor.

JioMart renders product cards (``jm-product`` / ``item-card``); the name is read
from the card's title element and both amounts from the card itself.
"""

from __future__ import annotations

from bs4 import Tag

from ..models import SiteResult
from ..sites import SiteId
from ..utils import clean_text
from .base import BaseExtractor


class JioMartExtractor(BaseExtractor):
    site = SiteId.JIOMART

    def card_name(self, card: Tag) -> str:
        # Title slots sometimes hold a short badge ("New", "Sale"); keep looking.
        for selector in self.config.card_name_selectors:
            for el in card.select(selector):
                name = clean_text(el.get_text(" "))
                if len(name) >= self.config.min_name_length:
                    return name
        return ""


def extract_from_jiomart(html: str, source_label: str) -> SiteResult:
    return JioMartExtractor().extract(html, source_label)
