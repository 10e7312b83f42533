"""Utilities shared by price search providers."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from urllib.parse import urljoin


DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
}

PRICE_OBJECT_KEYS = ("value", "amount", "selling_price", "sale_price", "price", "min")


def to_price(value: Any) -> Optional[Decimal]:
    """Best effort conversion of a raw price to a non-negative Decimal.

    Accepts numbers, currency formatted strings ("AED 1,234.50") and objects
    carrying the amount under a common key. Anything unusable becomes None,
    never zero.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, dict):
        for key in PRICE_OBJECT_KEYS:
            if value.get(key) is not None:
                return to_price(value[key])
        return None

    if isinstance(value, (int, float, Decimal)):
        try:
            amount = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
        return _valid_amount(amount)

    if isinstance(value, str):
        return _parse_price_text(value)

    return None


def _parse_price_text(price_text: str) -> Optional[Decimal]:
    if re.search(r"-\s*\d", price_text):
        return None

    cleaned = re.sub(r"[^\d,\.]", "", price_text)
    if not cleaned or not re.search(r"\d", cleaned):
        return None

    comma_count = cleaned.count(",")
    dot_count = cleaned.count(".")

    if comma_count and dot_count:
        if cleaned.rfind(".") > cleaned.rfind(","):
            normalized = cleaned.replace(",", "")
        else:
            # European style: dot for thousands, comma for decimals.
            normalized = cleaned.replace(".", "").replace(",", ".")
    elif comma_count:
        decimals_len = len(cleaned) - cleaned.rfind(",") - 1
        if comma_count == 1 and decimals_len != 3:
            normalized = cleaned.replace(",", ".")
        else:
            normalized = cleaned.replace(",", "")
    elif dot_count > 1:
        normalized = cleaned.replace(".", "")
    else:
        normalized = cleaned

    try:
        return _valid_amount(Decimal(normalized.strip(".")))
    except (InvalidOperation, ValueError):
        return None


def _valid_amount(amount: Decimal) -> Optional[Decimal]:
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def normalize_whitespace(value: str) -> str:
    """Collapse repeated spaces and newlines."""
    return re.sub(r"\s+", " ", value).strip()


def clean_text(value: Any) -> Optional[str]:
    """Return a whitespace normalized string or None for empty values."""
    if value is None:
        return None
    text = normalize_whitespace(str(value))
    return text or None


def absolute_url(value: Any, base: str) -> Optional[str]:
    """Resolve store relative paths against the store origin."""
    link = clean_text(value)
    if not link:
        return None
    if link.startswith("http://") or link.startswith("https://"):
        return link
    return urljoin(base, link)


def format_aed(value: Decimal | None, currency: str = "AED") -> Optional[str]:
    """Format Decimal values the way the stores display them."""
    if value is None:
        return None

    quantized = value.quantize(Decimal("0.01"))
    return f"{quantized:,.2f} {currency}"
