"""Fixed-precision duration arithmetic and input parsing.

Durations are whole or half days, but legacy data and edits can produce any
one-decimal value. Internally every amount is an integer count of tenths of
a day; floats only appear at the edges (payloads, responses, summaries).
"""

from __future__ import annotations

import math
import re
from datetime import date

EPSILON = 1e-9

FULL_DAY_TENTHS = 10
HALF_DAY_TENTHS = 5

_NUMBER_RE = re.compile(r"-?\d+(\.\d+)?")
_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def round1(value: float) -> float:
    """Round half-up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def is_zero(value: float) -> bool:
    return abs(value) <= EPSILON


def approx_equal(a: float, b: float) -> bool:
    return abs(a - b) <= EPSILON


def to_tenths(value: float) -> int:
    """Convert a day amount to integer tenths, rounding to one decimal first."""
    return math.floor(value * 10 + 0.5)


def from_tenths(tenths: int) -> float:
    return tenths / 10


def parse_duration(raw: object) -> float:
    """Parse a numeric duration, accepting legacy textual forms.

    Numbers pass through unchanged. Strings such as ``"0,5"`` or
    ``"0.5 day"`` yield the first decimal number found. Raises ``ValueError``
    when no number can be extracted.
    """
    if isinstance(raw, bool):
        msg = f"Not a number: {raw!r}"
        raise ValueError(msg)
    if isinstance(raw, (int, float)):
        if math.isnan(raw):
            msg = "Not a number: nan"
            raise ValueError(msg)
        return float(raw)
    if raw is None:
        msg = "Not a number: None"
        raise ValueError(msg)

    text = str(raw).replace(",", ".", 1)
    match = _NUMBER_RE.search(text)
    if match is None:
        msg = f"Not a number: {raw!r}"
        raise ValueError(msg)
    return float(match.group(0))


def format_duration(value: float) -> str:
    """Render a day amount the way balances are displayed: ``1`` or ``0.5``."""
    rounded = round1(value)
    if rounded.is_integer():
        return str(int(rounded))
    return f"{rounded:.1f}"


def format_tenths(tenths: int) -> str:
    return format_duration(from_tenths(tenths))


def parse_date_input(raw: str | None, today: date | None = None) -> date | None:
    """Parse a strict ``YYYY-MM-DD`` date.

    Blank input means today. Returns None for anything malformed or for
    impossible calendar dates such as 2025-02-30.
    """
    text = (raw or "").strip()
    if not text:
        return today or date.today()

    match = _DATE_RE.match(text)
    if match is None:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def is_weekend(value: date) -> bool:
    return value.weekday() >= 5
