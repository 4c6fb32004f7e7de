"""Shared text and price helpers for extractors."""

from __future__ import annotations

import math
import re

# Western (1,234) and Indian (1,23,456) digit grouping, then a plain number.
_AMOUNT = r"(\d{1,3}(?:,\d{2,3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
_CURRENCY = r"(?:₹|\bRs\.?|\bINR)"

PRICE_RE = re.compile(rf"{_CURRENCY}?\s*{_AMOUNT}", re.IGNORECASE)
CURRENCY_AMOUNT_RE = re.compile(rf"{_CURRENCY}\s*{_AMOUNT}", re.IGNORECASE)

_WHITESPACE_RE = re.compile(r"\s+")
# Names made only of digits, punctuation and currency marks.
_NOISE_NAME_RE = re.compile(r"[\W\d_₹]+")


def _to_amount(raw: str) -> float | None:
    try:
        value = float(raw.replace(",", ""))
    except ValueError:
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return round(value, 2)


def parse_price(price_text: str | None) -> float | None:
    """Parse the first amount in a price fragment.

    Handles formats like:
    - "₹40"
    - "₹ 1,234.50"
    - "Rs. 1,23,456"
    - "40"
    """
    if not isinstance(price_text, str) or not price_text:
        return None

    if not (match := PRICE_RE.search(price_text)):
        return None
    return _to_amount(match.group(1))


def find_prices(text: str | None) -> list[float]:
    """Return every currency-prefixed amount in ``text``, in order."""
    return [value for value, _ in find_price_spans(text)]


def find_price_spans(text: str | None) -> list[tuple[float, int]]:
    """Like ``find_prices``, paired with the offset where each amount's digits start."""
    if not text:
        return []
    spans = []
    for match in CURRENCY_AMOUNT_RE.finditer(text):
        value = _to_amount(match.group(1))
        if value is not None:
            spans.append((value, match.start(1)))
    return spans


def has_currency(text: str | None) -> bool:
    return bool(text) and CURRENCY_AMOUNT_RE.search(text) is not None


def clean_text(text: str | None) -> str:
    """Collapse whitespace runs and trim."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def name_key(name: str) -> str:
    """Deduplication key: trimmed, whitespace-collapsed, case-insensitive."""
    return clean_text(name).casefold()


def is_noise_name(name: str) -> bool:
    """True when a name is only numbers, punctuation or currency symbols."""
    return bool(_NOISE_NAME_RE.fullmatch(name))


def slugify(value: str) -> str:
    """Lowercase, with runs of anything but letters and digits turned into "-"."""
    return re.sub(r"[\W_]+", "-", value.strip().lower()).strip("-")
