"""Helpers for server-rendered JSON state embedded in listing pages."""

from __future__ import annotations

import json
import logging
import math
import re
from collections.abc import Iterator, Sequence
from typing import Any

from bs4 import BeautifulSoup

from ..utils import parse_price

logger = logging.getLogger(__name__)

NAME_FIELDS = (
    "name",
    "title",
    "productName",
    "displayName",
    "itemName",
    "productTitle",
    "product_name",
)
PRICE_FIELDS = (
    "price",
    "sellingPrice",
    "dmartPrice",
    "finalPrice",
    "offerPrice",
    "offer_price",
    "currentPrice",
    "sp",
)
MRP_FIELDS = ("mrp", "listPrice", "originalPrice", "markedPrice", "marked_price")

PRODUCT_KEY_HINTS = ("product", "item", "search", "listing", "result", "data")
NEXT_DATA_KEY_HINTS = PRODUCT_KEY_HINTS + ("props",)

BROAD_PASS_DEPTH = 6
MAX_WALK_DEPTH = 15


def load_next_data(soup: BeautifulSoup) -> dict | None:
    """Parse the Next.js ``__NEXT_DATA__`` hydration blob, if present."""
    script = soup.find("script", {"id": "__NEXT_DATA__"})
    if not script or not script.string:
        return None

    try:
        data = json.loads(script.string)
    except ValueError as exc:
        logger.debug("Malformed __NEXT_DATA__ blob: %s", exc)
        return None
    return data if isinstance(data, dict) else None


def load_assigned_json(html: str, variable: str) -> Any | None:
    """Decode the JSON literal assigned to ``variable`` in an inline script.

    ``window.___INITIAL_STATE___ = {...};`` is decoded from the first brace
    after the assignment, so trailing script code is ignored.
    """
    pattern = re.compile(re.escape(variable) + r"\s*=\s*")
    decoder = json.JSONDecoder()
    for match in pattern.finditer(html):
        try:
            value, _ = decoder.raw_decode(html, match.end())
        except ValueError as exc:
            logger.debug("Malformed JSON assigned to %s: %s", variable, exc)
            continue
        return value
    return None


def dig(obj: Any, path: Sequence[str]) -> Any | None:
    """Follow a key path through nested dicts; ``None`` when any step is missing."""
    for key in path:
        if not isinstance(obj, dict):
            return None
        obj = obj.get(key)
    return obj


def _field_amount(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return round(float(value), 2) if value >= 0 and math.isfinite(value) else None
    if isinstance(value, str):
        return parse_price(value)
    if isinstance(value, dict):
        for key in ("value", "amount", "offerPrice", "price"):
            if (amount := _field_amount(value.get(key))) is not None:
                return amount
    return None


def product_name(node: dict) -> str | None:
    """Return the first name field holding a string longer than 3 characters."""
    for key in NAME_FIELDS:
        value = node.get(key)
        if isinstance(value, str) and len(value.strip()) > 3:
            return value.strip()
    return None


def is_product_like(node: Any) -> bool:
    """A dict with a usable name and at least one price-like field."""
    if not isinstance(node, dict) or product_name(node) is None:
        return False
    return any(node.get(key) is not None for key in PRICE_FIELDS + MRP_FIELDS)


def node_prices(node: dict) -> tuple[float | None, float | None]:
    """Return ``(price, mrp)`` from a product-like dict."""
    price = next(
        (amount for key in PRICE_FIELDS if (amount := _field_amount(node.get(key))) is not None),
        None,
    )
    mrp = next(
        (amount for key in MRP_FIELDS if (amount := _field_amount(node.get(key))) is not None),
        None,
    )
    return price, mrp


def walk_products(
    obj: Any,
    *,
    key_hints: Sequence[str] | None = None,
    max_depth: int = MAX_WALK_DEPTH,
) -> Iterator[dict]:
    """Yield product-like dicts found under ``obj`` in document order.

    The walk never goes deeper than ``max_depth`` levels and does not descend
    into a product-like dict. With ``key_hints`` set, only dict keys whose
    lowercase name contains one of the hints are followed; list entries are
    always followed.
    """
    hints = tuple(h.lower() for h in key_hints) if key_hints else None
    stack: list[tuple[Any, int]] = [(obj, 0)]

    while stack:
        node, depth = stack.pop()
        if depth > max_depth:
            continue

        if isinstance(node, list):
            children = [(child, depth + 1) for child in node if isinstance(child, (dict, list))]
        elif isinstance(node, dict):
            if depth > 0 and is_product_like(node):
                yield node
                continue
            children = [
                (value, depth + 1)
                for key, value in node.items()
                if isinstance(value, (dict, list))
                and (hints is None or any(h in str(key).lower() for h in hints))
            ]
        else:
            continue

        # Reverse so the stack pops children in their original order.
        stack.extend(reversed(children))


def find_product_nodes(
    blob: Any,
    *,
    key_hints: Sequence[str] = PRODUCT_KEY_HINTS,
    broad_depth: int = BROAD_PASS_DEPTH,
    max_depth: int = MAX_WALK_DEPTH,
) -> list[dict]:
    """Two-pass search: a shallow walk of everything, then a deep hinted walk."""
    nodes = list(walk_products(blob, max_depth=broad_depth))
    if nodes:
        return nodes
    return list(walk_products(blob, key_hints=key_hints, max_depth=max_depth))
