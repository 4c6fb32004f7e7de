"""Zepto extractor.

Zepto product tiles carry the product name in the image ``alt`` text, so the
structural tier starts from images and climbs to the tile holding the price.
Newer builds mark the name with ``data-slot-id="ProductName"``; that is tried
before the generic heuristic.
"""

from __future__ import annotations

import re

from bs4 import Tag

from ..models import SiteResult
from ..sites import SiteId
from ..utils import clean_text
from .base import BaseExtractor, Candidate, HtmlDocument, Tier

SLOT_SELECTOR = '[data-slot-id="ProductName"]'
CARD_TAGS = ("a", "article", "section", "div")

_IMAGE_FILE_RE = re.compile(r"\.(png|jpe?g|gif|svg|webp|avif)$", re.IGNORECASE)


class ZeptoExtractor(BaseExtractor):
    site = SiteId.ZEPTO

    def tiers(self) -> list[Tier]:
        return [
            Tier("structured", self.structured_candidates),
            Tier("image", self.structural_candidates),
            Tier("slot", self.slot_candidates),
            Tier("generic", self.generic_candidates, generic=True),
        ]

    def element_name(self, el: Tag) -> str:
        name = super().element_name(el)
        if el.name != "img":
            return name
        if name.casefold() in self.config.image_alt_stoplist or _IMAGE_FILE_RE.search(name):
            return ""
        return name

    def slot_candidates(self, doc: HtmlDocument) -> list[Candidate]:
        candidates = []
        for slot in doc.dom.select(SLOT_SELECTOR):
            name = clean_text(slot.get_text(" "))
            if len(name) < 3:
                name = self._card_image_name(slot)
            if not name:
                continue
            container = self.find_price_container(slot)
            price, mrp = self.resolve_prices(container) if container is not None else (None, None)
            candidates.append(Candidate(name, price, mrp))
        return candidates

    def _card_image_name(self, slot: Tag) -> str:
        card = slot.find_parent(CARD_TAGS)
        if card is None:
            return ""
        for img in card.find_all("img"):
            if name := self.element_name(img):
                return name
        return ""


def extract_from_zepto(html: str, source_label: str) -> SiteResult:
    return ZeptoExtractor().extract(html, source_label)
