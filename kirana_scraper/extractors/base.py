"""Base extractor shared by all sites.

Every site runs the same tiered fallback: the structured-data tier first, then
structural selectors, then a generic text heuristic. The first tier that yields
at least one validated product wins.
"""

from __future__ import annotations

import logging
import re
from abc import ABC
from bisect import bisect_right
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from functools import cached_property
from typing import Any, NamedTuple

import soupsieve as sv
from bs4 import BeautifulSoup, Comment, Tag

from ..models import Product, SiteResult
from ..sites import SiteConfig, SiteId, get_site_config
from ..utils import (
    clean_text,
    find_price_spans,
    has_currency,
    is_noise_name,
    name_key,
    parse_price,
)
from .structured import (
    NEXT_DATA_KEY_HINTS,
    PRODUCT_KEY_HINTS,
    dig,
    find_product_nodes,
    is_product_like,
    load_assigned_json,
    load_next_data,
    node_prices,
    product_name,
)

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 200
MAX_LOCATION_LENGTH = 100
# Generic-tier hits without a price need a name longer than this.
MIN_UNPRICED_NAME_LENGTH = 10
GENERIC_BLOCK_TAGS = ("div", "article", "section", "li")
GENERIC_MAX_BLOCK_CHARS = 500
NON_CONTENT_TAGS = ("script", "style", "noscript", "template")
# Price containers never climb this far; the whole page would match.
PAGE_ROOT_TAGS = ("body", "html", "[document]")

_WORD_RE = re.compile(r"[^\W\d_]+")
# A line holding only a currency mark, its digits on the next line.
_BARE_CURRENCY_RE = re.compile(r"(?:₹|Rs\.?|INR)", re.IGNORECASE)


@dataclass(frozen=True)
class Candidate:
    """A product as found by a tier, before validation."""

    name: str
    price: float | None = None
    mrp: float | None = None


class Tier(NamedTuple):
    name: str
    run: Callable[[HtmlDocument], Iterable[Candidate]]
    generic: bool = False


class HtmlDocument:
    """A rendered page: raw markup plus parsed trees, built once per extraction."""

    def __init__(self, html: str):
        self.html = html

    @cached_property
    def soup(self) -> BeautifulSoup:
        """Full tree, scripts included (used for embedded JSON)."""
        return BeautifulSoup(self.html, "lxml")

    @cached_property
    def dom(self) -> BeautifulSoup:
        """Tree without script/style content (used for visible text)."""
        soup = BeautifulSoup(self.html, "lxml")
        for tag in soup.find_all(NON_CONTENT_TAGS):
            tag.decompose()
        return soup


def innermost(tags: list[Tag]) -> list[Tag]:
    """Drop tags that contain another tag from the same list."""
    ids = {id(t) for t in tags}
    outer: set[int] = set()
    for tag in tags:
        for parent in tag.parents:
            if id(parent) in ids:
                outer.add(id(parent))
    return [t for t in tags if id(t) not in outer]


def outermost(tags: list[Tag]) -> list[Tag]:
    """Drop tags nested inside another tag from the same list."""
    ids = {id(t) for t in tags}
    return [t for t in tags if not any(id(parent) in ids for parent in t.parents)]


class BaseExtractor(ABC):
    """Abstract base class for all site extractors."""

    site: SiteId

    def __init__(self, config: SiteConfig | None = None):
        self.config = config or get_site_config(self.site)
        self._strike = sv.compile(", ".join(self.config.strike_selectors))

    @property
    def display_name(self) -> str:
        return self.config.display_name

    def __call__(self, html: str, source_label: str) -> SiteResult:
        return self.extract(html, source_label)

    # --- Public contract ---

    def extract(self, html: str, source_label: str) -> SiteResult:
        """Extract products and the delivery location from one rendered page."""
        if not isinstance(html, str):
            raise TypeError(f"html must be str, not {type(html).__name__}")

        doc = HtmlDocument(html)
        location = self.extract_location(doc)
        logger.info(
            "[%s] Extracting from HTML (%d chars), location: %s",
            self.display_name,
            len(html),
            location or "not found",
        )

        products: list[Product] = []
        for tier in self.tiers():
            products = self.validate(tier.run(doc), generic=tier.generic)
            logger.info("[%s] %s tier: found %d products", self.display_name, tier.name, len(products))
            if products:
                break

        return SiteResult(
            website=self.display_name,
            location=location,
            products=tuple(products),
            filename=source_label,
        )

    def extract_location(self, doc: HtmlDocument) -> str | None:
        """Return the delivery location shown on the page, if any."""
        for selector in self.config.location_selectors:
            for el in doc.dom.select(selector):
                text = clean_text(el.get_text(" "))
                if self.config.min_location_length <= len(text) < MAX_LOCATION_LENGTH:
                    return text
        return None

    def tiers(self) -> list[Tier]:
        return [
            Tier("structured", self.structured_candidates),
            Tier("structural", self.structural_candidates),
            Tier("generic", self.generic_candidates, generic=True),
        ]

    # --- Validation ---

    def is_stoplisted(self, name: str) -> bool:
        lowered = name.casefold()
        if any(phrase in lowered for phrase in self.config.stop_phrases):
            return True
        words = _WORD_RE.findall(lowered)
        return bool(words) and all(w in self.config.stop_terms for w in words)

    def is_valid_name(self, name: str) -> bool:
        return (
            3 <= len(name) < MAX_NAME_LENGTH
            and not is_noise_name(name)
            and not self.is_stoplisted(name)
        )

    def validate(self, candidates: Iterable[Candidate], *, generic: bool = False) -> list[Product]:
        """Drop invalid candidates and duplicate names; first occurrence wins."""
        seen: set[str] = set()
        products: list[Product] = []
        for candidate in candidates:
            name = clean_text(candidate.name)
            if not self.is_valid_name(name):
                continue
            price = _amount(candidate.price)
            mrp = _amount(candidate.mrp)
            if generic:
                if price is None and len(name) <= MIN_UNPRICED_NAME_LENGTH:
                    continue
            elif self.config.require_price and price is None:
                continue

            key = name_key(name)
            if key in seen:
                continue
            seen.add(key)
            products.append(Product(name=name, price=price, mrp=mrp, website=self.display_name))
        return products

    # --- Tier 1: structured data ---

    def structured_blobs(self, doc: HtmlDocument) -> Iterator[tuple[Any, tuple[str, ...]]]:
        """Yield ``(blob, key_hints)`` for each embedded JSON payload found."""
        for variable in self.config.json_state_vars:
            if variable == "__NEXT_DATA__":
                if (blob := load_next_data(doc.soup)) is not None:
                    yield blob, NEXT_DATA_KEY_HINTS
            elif (blob := load_assigned_json(doc.html, variable)) is not None:
                yield blob, PRODUCT_KEY_HINTS

    def structured_candidates(self, doc: HtmlDocument) -> list[Candidate]:
        for blob, hints in self.structured_blobs(doc):
            nodes: list[dict] = []
            for path in self.config.json_state_paths:
                items = dig(blob, path)
                if isinstance(items, list):
                    nodes.extend(item for item in items if is_product_like(item))
            if not nodes:
                nodes = find_product_nodes(blob, key_hints=hints)
            if nodes:
                return [self._node_candidate(node) for node in nodes]
        return []

    @staticmethod
    def _node_candidate(node: dict) -> Candidate:
        price, mrp = node_prices(node)
        return Candidate(name=product_name(node) or "", price=price, mrp=mrp)

    # --- Tier 2: structural selectors ---

    def structural_candidates(self, doc: HtmlDocument) -> list[Candidate]:
        candidates = self.named_element_candidates(doc, self.config.name_selectors)
        if self.config.card_selectors:
            candidates.extend(self.card_candidates(doc, self.config.card_selectors))
        return candidates

    def named_element_candidates(self, doc: HtmlDocument, selectors: Iterable[str]) -> list[Candidate]:
        """Name element first, then the nearest ancestor holding a price."""
        candidates = []
        for selector in selectors:
            for el in doc.dom.select(selector):
                name = self.element_name(el)
                if len(name) < self.config.min_name_length:
                    continue
                container = self.find_price_container(el)
                price, mrp = self.resolve_prices(container) if container is not None else (None, None)
                candidates.append(Candidate(name, price, mrp))
        return candidates

    def card_candidates(self, doc: HtmlDocument, selectors: Iterable[str]) -> list[Candidate]:
        """Card first, then the card's title element."""
        named: list[tuple[Tag, str]] = []
        for card in doc.dom.select(", ".join(selectors)):
            name = self.card_name(card)
            if len(name) >= self.config.min_name_length:
                named.append((card, name))

        # A wrapper around several cards would borrow the first card's name.
        names = {id(card): name for card, name in named}
        candidates = []
        for card in innermost([card for card, _ in named]):
            price, mrp = self.resolve_prices(card)
            candidates.append(Candidate(names[id(card)], price, mrp))
        return candidates

    def card_name(self, card: Tag) -> str:
        for selector in self.config.card_name_selectors:
            if (el := card.select_one(selector)) is not None:
                if name := clean_text(el.get_text(" ")):
                    return name
        return ""

    def element_name(self, el: Tag) -> str:
        if el.name == "img" and self.config.name_attrs:
            for attr in self.config.name_attrs:
                if value := clean_text(el.get(attr)):
                    return value
            return ""
        return self.card_name(el) or clean_text(el.get_text(" "))

    def find_price_container(self, el: Tag) -> Tag | None:
        """Nearest ancestor (bounded) that carries a price signal."""
        node = el.parent
        for _ in range(self.config.container_depth):
            if node is None or not isinstance(node, Tag) or node.name in PAGE_ROOT_TAGS:
                return None
            if self.has_price_signal(node):
                return node
            node = node.parent
        return None

    def has_price_signal(self, node: Tag) -> bool:
        if has_currency(node.get_text(" ")):
            return True
        return any(
            parse_price(el.get_text(" "))
            for selector in self.config.amount_selectors
            for el in node.select(selector)
        )

    # --- Price vs MRP ---

    def is_struck(self, tag: Tag | None, container: Tag) -> bool:
        while tag is not None and isinstance(tag, Tag):
            if self._strike.match(tag):
                return True
            if tag is container:
                return False
            tag = tag.parent
        return False

    def collect_amounts(self, container: Tag) -> list[tuple[float, bool]]:
        """Amounts in document order, each flagged when shown struck through."""
        for selector in self.config.amount_selectors:
            amounts = []
            for el in outermost(container.select(selector)):
                found = self._scan_amounts(el, container)
                if not found:
                    # Some sites print bare numbers inside their amount elements.
                    value = parse_price(el.get_text(" "))
                    if value and value > 0:
                        found = [(value, self.is_struck(el, container))]
                amounts.extend(found)
            if amounts:
                return amounts

        return self._scan_amounts(container, container)

    def _scan_amounts(self, root: Tag, container: Tag) -> list[tuple[float, bool]]:
        """Amounts in ``root``'s joined text.

        The glyph and the digits may sit in different nodes (``<span>₹</span>
        <span>27</span>``, ``₹<!-- -->27``), so prices are matched on the joined
        text and each takes the strike flag of the node holding its digits.
        """
        text = ""
        starts: list[int] = []
        struck: list[bool] = []
        flags: dict[int, bool] = {}
        for string in root.find_all(string=True):
            parent = string.parent
            if isinstance(string, Comment) or parent.name in NON_CONTENT_TAGS:
                continue
            if id(parent) not in flags:
                flags[id(parent)] = self.is_struck(parent, container)
            starts.append(len(text))
            struck.append(flags[id(parent)])
            text += f"{string} "

        return [
            (value, struck[bisect_right(starts, offset) - 1])
            for value, offset in find_price_spans(text)
            if value > 0
        ]

    def resolve_prices(self, container: Tag) -> tuple[float | None, float | None]:
        return self.disambiguate(self.collect_amounts(container))

    def disambiguate(self, amounts: list[tuple[float, bool]]) -> tuple[float | None, float | None]:
        """Return ``(price, mrp)``.

        A struck-through amount is the MRP when another amount is not struck.
        Without that signal the site's ordering convention applies (MRP first by
        default); this ordering is an assumption, not a verified rule.
        """
        if not amounts:
            return None, None
        if len(amounts) == 1:
            return amounts[0][0], None

        struck = [value for value, is_struck in amounts if is_struck]
        plain = [value for value, is_struck in amounts if not is_struck]
        if struck and plain:
            return plain[0], struck[0]

        first, second = amounts[0][0], amounts[1][0]
        return (second, first) if self.config.mrp_first else (first, second)

    # --- Tier 3: generic heuristic ---

    def generic_candidates(self, doc: HtmlDocument) -> list[Candidate]:
        found: list[tuple[Tag, str]] = []
        for el in doc.dom.find_all(GENERIC_BLOCK_TAGS):
            text = el.get_text("\n")
            if not has_currency(text) or len(clean_text(text)) > GENERIC_MAX_BLOCK_CHARS:
                continue
            lines = _join_currency_lines(
                [line for raw in text.split("\n") if (line := clean_text(raw))]
            )
            if len(lines) < 2:
                continue
            if name := self.generic_name(el, lines):
                found.append((el, name))

        names = {id(el): name for el, name in found}
        candidates = []
        for el in innermost([el for el, _ in found]):
            price, mrp = self.resolve_prices(el)
            candidates.append(Candidate(names[id(el)], price, mrp))
        return candidates

    def generic_name(self, el: Tag, lines: list[str]) -> str | None:
        """The line just before the first price line (looking back up to three lines)."""
        price_idx = next((i for i, line in enumerate(lines) if has_currency(line)), None)
        if price_idx is None:
            return None
        for i in range(price_idx - 1, max(price_idx - 4, -1), -1):
            if self._plausible_line(lines[i]):
                return lines[i]

        # Name and price on the same line: keep what precedes the amount.
        head = re.split(r"₹|\bRs\.?", lines[price_idx], maxsplit=1, flags=re.IGNORECASE)[0]
        head = clean_text(head)
        return head if self._plausible_line(head) else None

    def _plausible_line(self, line: str) -> bool:
        return (
            3 < len(line) < 100
            and not has_currency(line)
            and self.is_valid_name(line)
        )


def _join_currency_lines(lines: list[str]) -> list[str]:
    joined: list[str] = []
    for line in lines:
        if joined and _BARE_CURRENCY_RE.fullmatch(joined[-1]):
            joined[-1] += line
        else:
            joined.append(line)
    return joined


def _amount(value: float | None) -> float | None:
    if value is None or value < 0:
        return None
    return round(float(value), 2)
