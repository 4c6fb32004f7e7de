"""Swiggy Instamart extractor.

Instamart hydrates from ``window.___INITIAL_STATE___``; item lists live under
``searchPLV2`` / ``categoryListingV2`` / ``campaignListingV2``. The same state
carries the delivery address, which is preferred over any DOM text.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from typing import Any

from ..models import SiteResult
from ..sites import SiteId
from ..utils import clean_text
from .base import MAX_LOCATION_LENGTH, BaseExtractor, HtmlDocument
from .structured import PRODUCT_KEY_HINTS, dig, load_assigned_json

logger = logging.getLogger(__name__)

STATE_VARIABLE = "window.___INITIAL_STATE___"
LOCATION_FIELDS = ("address", "annotation")

_USER_LOCATION_RE = re.compile(r"userLocation\s*:\s*(\{[^}]+\})")


class SwiggyExtractor(BaseExtractor):
    site = SiteId.SWIGGY

    def structured_blobs(self, doc: HtmlDocument) -> Iterator[tuple[Any, tuple[str, ...]]]:
        yield from super().structured_blobs(doc)
        yield from self._inline_item_blobs(doc)

    def _inline_item_blobs(self, doc: HtmlDocument) -> Iterator[tuple[Any, tuple[str, ...]]]:
        """Other inline scripts that embed an ``items`` payload."""
        decoder = json.JSONDecoder()
        for script in doc.soup.find_all("script"):
            text = script.string or ""
            if '"items"' not in text or "price" not in text.lower():
                continue
            start = text.find("{")
            if start < 0:
                continue
            try:
                blob, _ = decoder.raw_decode(text, start)
            except ValueError:
                continue
            yield blob, PRODUCT_KEY_HINTS

    def extract_location(self, doc: HtmlDocument) -> str | None:
        if location := self._state_location(doc):
            return location
        return super().extract_location(doc)

    def _state_location(self, doc: HtmlDocument) -> str | None:
        state = load_assigned_json(doc.html, STATE_VARIABLE)
        user_location = dig(state, ("userLocation",))

        if not isinstance(user_location, dict):
            # Some builds inline it as a plain object literal.
            if match := _USER_LOCATION_RE.search(doc.html):
                try:
                    user_location = json.loads(match.group(1))
                except ValueError:
                    logger.debug("[%s] Unparseable userLocation literal", self.display_name)

        if isinstance(user_location, dict):
            for key in LOCATION_FIELDS:
                raw = user_location.get(key)
                value = clean_text(raw) if isinstance(raw, str) else ""
                if value and len(value) < MAX_LOCATION_LENGTH:
                    return value
        return None


def extract_from_swiggy(html: str, source_label: str) -> SiteResult:
    return SwiggyExtractor().extract(html, source_label)
