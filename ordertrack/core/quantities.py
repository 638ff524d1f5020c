"""Safe casts for quantities, dates, limits and labels coming from clients."""

import re
import unicodedata
from datetime import date
from typing import Any

_FR_INT_RE = re.compile(r"^\d+(?:\.00)?$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_WHITESPACE_RE = re.compile(r"\s+")


def as_non_negative_int(value: Any) -> int | None:
    """Strict business quantity: an integer >= 0, else None.

    Booleans and floats with a fractional part are refused; numeric
    strings holding a plain integer are accepted.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        if not value.is_integer() or value < 0:
            return None
        return int(value)
    if isinstance(value, str):
        s = value.strip()
        if not s.isdigit():
            return None
        return int(s)
    return None


def as_non_negative_int_fr_strict(value: Any) -> int | None:
    """Quantity written the French way.

    Accepts "3", "3,00", "3.00" and integral numbers; refuses "3,49",
    "3.5", negatives and garbage.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if not value.is_integer() or value < 0:
            return None
        return int(value)
    if isinstance(value, int):
        return value if value >= 0 else None

    s = str(value).strip().replace(",", ".", 1)
    if not _FR_INT_RE.match(s):
        return None
    return int(float(s))


def parse_iso_date(value: Any) -> date | None:
    """Parse a strict YYYY-MM-DD string into a date, None when invalid."""
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip()
    if not _ISO_DATE_RE.match(s):
        return None
    try:
        return date.fromisoformat(s)
    except ValueError:
        return None


def clamp_limit(value: Any, default: int, maximum: int) -> int:
    """Clamp a page size to [1, maximum], falling back to default."""
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return max(1, min(maximum, n))


def clamp_offset(value: Any) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, n)


def normalize_label(value: Any) -> str:
    """Normalize a PDF label for catalog lookup.

    NFKC form, non-breaking spaces turned into spaces, runs of whitespace
    collapsed, trimmed.
    """
    if value is None:
        return ""
    s = unicodedata.normalize("NFKC", str(value))
    s = s.replace("\u00a0", " ").replace("\u202f", " ")
    return _WHITESPACE_RE.sub(" ", s).strip()
