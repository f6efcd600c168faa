"""Tolerant parsers for free-text listing fields.

Every helper accepts arbitrary input and never raises.
"""

from __future__ import annotations

import math
import re
from typing import Final, NamedTuple

_DIGITS: Final = re.compile(r"(\d+)")
_PLUS_COUNT: Final = re.compile(r"^(\d+)\s*\+$")
_BARE_INT: Final = re.compile(r"^(\d+)$")
_SIGNED_INT: Final = re.compile(r"^-?\d+$")
_PRICE_PREFIX: Final = re.compile(r"^da\s*", re.IGNORECASE)
_PRICE_NOISE: Final = re.compile(r"[€.\s]")
_LEADING_DIGITS: Final = re.compile(r"^\d+")


class ParsedValue(NamedTuple):
    """Best-effort numeric value plus the raw text when it carries more."""

    value: int | float | None
    raw: str | None


_EMPTY: Final = ParsedValue(None, None)


def _finite_number(value: object) -> int | float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def parse_number(value: object) -> int | float | None:
    """Return numbers as-is, or the first run of digits found in a string."""

    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _finite_number(value)

    match = _DIGITS.search(str(value))
    return int(match.group(1)) if match else None


def parse_count(value: object) -> ParsedValue:
    """Parse room-like counts, keeping "5+" style values as raw text."""

    if value is None:
        return _EMPTY
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = _finite_number(value)
        return ParsedValue(number, None) if number is not None else _EMPTY

    text = str(value).strip()
    if not text:
        return _EMPTY

    plus_match = _PLUS_COUNT.match(text)
    if plus_match:
        return ParsedValue(int(plus_match.group(1)), f"{plus_match.group(1)}+")

    int_match = _BARE_INT.match(text)
    if int_match:
        return ParsedValue(int(int_match.group(1)), None)

    any_digits = _DIGITS.search(text)
    if not any_digits:
        return ParsedValue(None, text)

    return ParsedValue(int(any_digits.group(1)), text)


def parse_floor(value: object) -> ParsedValue:
    """Parse a floor; labels such as "R" or "T" are codes, kept only as raw."""

    if value is None:
        return _EMPTY
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        number = _finite_number(value)
        return ParsedValue(number, None) if number is not None else _EMPTY

    text = str(value).strip()
    if not text:
        return _EMPTY
    if _SIGNED_INT.match(text):
        return ParsedValue(int(text), None)
    return ParsedValue(None, text)


def format_price(price: int) -> str:
    """Format a price the way it-IT locales display it: "€ 350.000"."""

    return f"€ {price:,}".replace(",", ".")


def parse_price(value: object) -> tuple[int, str]:
    """Return ``(price, formatted)``; 0 means the price is not disclosed."""

    if value is None or isinstance(value, bool):
        return 0, "N/A"

    if isinstance(value, (int, float)):
        number = _finite_number(value)
        if not number:
            return 0, "N/A"
        price = int(number)
        return price, format_price(price)

    if isinstance(value, dict):
        for key in ("value", "price", "amount"):
            candidate = value.get(key)
            if candidate:
                return parse_price(candidate)
        return 0, "N/A"

    if not isinstance(value, str):
        return 0, "N/A"

    cleaned = _PRICE_PREFIX.sub("", value.strip()).strip()
    if not cleaned:
        return 0, "N/A"

    numeric = _PRICE_NOISE.sub("", cleaned).replace(",00", "")
    match = _LEADING_DIGITS.match(numeric)
    price = int(match.group(0)) if match else 0
    return price, cleaned
