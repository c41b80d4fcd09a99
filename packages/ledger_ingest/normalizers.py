"""Cell-level normalization helpers used by the row parser.

Amounts are parsed into ``Decimal`` after stripping currency glyphs (including
the backslash that a yen sign turns into under some code pages), thousands
separators and parenthesized negatives. Dates are tried against an ordered
list of calendar grammars; the first grammar that yields a valid date wins.
"""

from __future__ import annotations

import re
import unicodedata
from collections.abc import Callable, Iterable
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation

from dateutil import parser as dateutil_parser

# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def clean_text(value: str | None) -> str:
    """Collapse internal whitespace/newlines to single spaces and strip."""

    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def normalize_whitespace(value: str) -> str:
    """NFKC-fold (full-width spaces and alphanumerics) and collapse whitespace."""

    return clean_text(unicodedata.normalize("NFKC", value))


def contains_any(text: str, patterns: Iterable[str]) -> bool:
    """Case-insensitive substring test against any of ``patterns``."""

    lowered = text.lower()
    return any(p and p.lower() in lowered for p in patterns)


_SHOP_NAME_STRIP = (
    re.compile(r"お客様番号:.*$"),
    re.compile(r"番号:.*$"),
    re.compile(r"\s*:\s*.*$"),
)


def extract_shop_name(description: str | None, *, max_len: int = 50) -> str:
    """Derive a short merchant label from a raw description.

    Customer/reference numbers after a colon are dropped, whitespace collapsed
    and the result truncated to ``max_len`` characters plus ``"..."``.
    """

    if not description:
        return "Unknown"
    shop = description
    for pattern in _SHOP_NAME_STRIP:
        shop = pattern.sub("", shop)
    shop = clean_text(shop)
    if len(shop) > max_len:
        shop = shop[:max_len] + "..."
    return shop or "Unknown"


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_CURRENCY_PREFIXES = ("¥", "\\", "$", "€", "£")
_CURRENCY_SUFFIXES = ("円", "JPY", "jpy")


def _fold(raw: str) -> str:
    # NFKC maps full-width digits, "－", "，" and "￥" to their ASCII/yen forms.
    s = unicodedata.normalize("NFKC", raw)
    return re.sub(r"[\s\"']", "", s)


def has_leading_minus(raw: str | None) -> bool:
    if raw is None:
        return False
    return _fold(str(raw)).startswith("-")


def parse_amount(raw: str | None) -> Decimal | None:
    """Parse a signed amount; ``None`` when the cell is empty or not numeric.

    Handles ``"¥1,080"``, ``"\\1,080"``, ``"-3,000"``, ``"(4,556)"``,
    ``"-($1,234.56)"``, full-width digits and a trailing ``円``.
    """

    if raw is None:
        return None
    s = _fold(str(raw))
    if not s:
        return None

    for suffix in _CURRENCY_SUFFIXES:
        if s.endswith(suffix):
            s = s[: -len(suffix)]

    negative = False
    # Strip sign, currency glyph and surrounding parentheses in any order.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:]
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:]
            changed = True
        for glyph in _CURRENCY_PREFIXES:
            if s.startswith(glyph):
                s = s[len(glyph) :]
                changed = True
        if s.startswith("(") and s.endswith(")") and len(s) >= 2:
            negative = True
            s = s[1:-1]
            changed = True
        if not changed:
            break

    s = s.replace(",", "")
    if not s:
        return None
    try:
        d = Decimal(s)
    except InvalidOperation:
        return None
    if not d.is_finite():
        return None
    return -abs(d) if negative else d


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

_TIME_SUFFIX = re.compile(r"[ T](\d{1,2}):(\d{2})(?::(\d{2}))?\s*$")


def _kanji(s: str) -> date | None:
    m = re.search(r"(\d{4})年(\d{1,2})月(\d{1,2})日", s)
    return date(int(m[1]), int(m[2]), int(m[3])) if m else None


def _compact(s: str) -> date | None:
    if not re.fullmatch(r"\d{8}", s):
        return None
    return date(int(s[:4]), int(s[4:6]), int(s[6:8]))


def _dotted(s: str) -> date | None:
    m = re.fullmatch(r"(\d{4})\.(\d{1,2})\.(\d{1,2})", s)
    return date(int(m[1]), int(m[2]), int(m[3])) if m else None


def _strptime(fmt: str) -> Callable[[str], date | None]:
    def _parse(s: str) -> date | None:
        return datetime.strptime(s, fmt).date()

    return _parse


# Ordered grammars; the first one yielding a valid date wins.
DATE_GRAMMARS: tuple[Callable[[str], date | None], ...] = (
    _kanji,
    _compact,
    _dotted,
    _strptime("%Y/%m/%d"),
    _strptime("%Y-%m-%d"),
    _strptime("%m/%d/%Y"),
    _strptime("%d/%m/%Y"),
)


def _native(s: str) -> date | None:
    # Last resort; only for strings that at least carry a 4-digit year.
    if not re.search(r"\d{4}", s):
        return None
    # dateutil fills missing parts from ``default``; two different defaults
    # disagree unless year, month and day all come from the string.
    first = dateutil_parser.parse(s, default=datetime(1, 1, 1))
    second = dateutil_parser.parse(s, default=datetime(2, 2, 2))
    if first.date() != second.date():
        return None
    return first.date()


def parse_date(raw: str | None) -> date | None:
    """Parse a calendar date from a cell, ignoring any trailing time-of-day."""

    parsed = parse_date_time(raw)
    return parsed[0] if parsed else None


def parse_date_time(raw: str | None) -> tuple[date, time | None] | None:
    """Parse ``(date, time-or-None)`` from a cell such as ``2024/05/01 10:30``."""

    if raw is None:
        return None
    s = unicodedata.normalize("NFKC", str(raw)).strip()
    if not s:
        return None

    tod: time | None = None
    m = _TIME_SUFFIX.search(s)
    if m:
        try:
            tod = time(int(m[1]), int(m[2]), int(m[3] or 0))
            s = s[: m.start()].strip()
        except ValueError:
            tod = None

    for grammar in DATE_GRAMMARS:
        try:
            d = grammar(s)
        except ValueError:
            continue
        if d is not None:
            return d, tod

    try:
        d = _native(s)
    except (ValueError, OverflowError):
        return None
    return (d, tod) if d is not None else None


__all__ = [
    "clean_text",
    "normalize_whitespace",
    "contains_any",
    "extract_shop_name",
    "has_leading_minus",
    "parse_amount",
    "DATE_GRAMMARS",
    "parse_date",
    "parse_date_time",
]
