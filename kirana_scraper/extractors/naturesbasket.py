"""Nature's Basket extractor.

Products are links to ``/product-detail/`` pages. Each product is usually
linked twice (image and title); the image link has no text and is skipped, and
a priced product is required.
"""

from __future__ import annotations

from bs4 import Tag

from ..models import SiteResult
from ..sites import SiteId
from ..utils import clean_text
from .base import BaseExtractor


class NaturesBasketExtractor(BaseExtractor):
    site = SiteId.NATURESBASKET

    def element_name(self, el: Tag) -> str:
        if name := self.card_name(el):
            return name
        if name := clean_text(el.get("title")):
            return name
        return clean_text(el.get_text(" "))


def extract_from_naturesbasket(html: str, source_label: str) -> SiteResult:
    return NaturesBasketExtractor().extract(html, source_label)
