"""Order text parser.

Turns the text of a supplier "accusé de réception" PDF into a candidate
order. The layout is positional: a quantity row made of three French
decimals is followed by the product label on the next line.

The parser is pure and never raises; anything it cannot find is left
as None (or an empty product list).
"""

import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any

_ARC_RE = re.compile(r"ACCUSE DE RECEPTION[\s\S]*?n[°º]?\s*([0-9]{6,})", re.IGNORECASE)
_ARC_FALLBACK_RE = re.compile(r"\bn[°º]?\s*([0-9]{6,})", re.IGNORECASE)

_DATE_RE = re.compile(r"COMMANDE DU\s+(\d{2}/\d{2}/\d{4})", re.IGNORECASE)
_DATE_FALLBACK_RE = re.compile(r"\bdu\s+(\d{2}/\d{2}/\d{4})", re.IGNORECASE)
_FR_DATE_RE = re.compile(r"^(\d{2})/(\d{2})/(\d{4})$")

_POSTCODE_RE = re.compile(r"\d{5}\s*\S+")
_QTY_ROW_RE = re.compile(r"^(\d+,\d{2})\s*\d+,\d{2}\s*\d+,\d{2}$")

# Table rows that are not products (freight, eco-tax...)
BANNED_LABEL_KEYWORDS = ("TRANSPORT", "REP ", "REP\u00a0", "REP1", "TGAP")

# Lines skipped after a quantity row, label included
_ROW_STRIDE = 3


@dataclass
class ParsedProduct:
    pdf_label: str
    quantity: int | float

    def to_dict(self) -> dict[str, Any]:
        return {"pdf_label": self.pdf_label, "quantity": self.quantity}


@dataclass
class ParsedOrder:
    """Candidate order extracted from PDF text.

    Attributes:
        arc: Client order reference (6+ digits)
        client_name: Line preceding the first postcode line
        order_date: ISO date string (YYYY-MM-DD)
        products: Product rows in document order
    """

    arc: str | None = None
    client_name: str | None = None
    order_date: str | None = None
    products: list[ParsedProduct] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "arc": self.arc,
            "client_name": self.client_name,
            "order_date": self.order_date,
            "products": [p.to_dict() for p in self.products],
        }


def fr_date_to_iso(value: str) -> str | None:
    """Convert DD/MM/YYYY into YYYY-MM-DD, None for impossible dates."""
    m = _FR_DATE_RE.match(value)
    if not m:
        return None
    dd, mm, yyyy = m.groups()
    try:
        return date(int(yyyy), int(mm), int(dd)).isoformat()
    except ValueError:
        return None


def should_ignore_label(label: str) -> bool:
    """Whether a table label is a non-product row."""
    if not label:
        return True
    upper = label.upper()
    return any(kw in upper for kw in BANNED_LABEL_KEYWORDS)


def _parse_fr_decimal(value: str) -> int | float:
    number = float(value.replace(",", "."))
    return int(number) if number.is_integer() else number


def parse_order_text(text: Any) -> ParsedOrder:
    """Parse the raw text of an order acknowledgement.

    Args:
        text: Text extracted from the PDF

    Returns:
        ParsedOrder, possibly empty
    """
    result = ParsedOrder()
    if not isinstance(text, str) or not text:
        return result

    normalized = text.replace("\r\n", "\n")

    arc_match = _ARC_RE.search(normalized) or _ARC_FALLBACK_RE.search(normalized)
    if arc_match:
        result.arc = arc_match.group(1)

    date_match = _DATE_RE.search(normalized) or _DATE_FALLBACK_RE.search(normalized)
    if date_match:
        result.order_date = fr_date_to_iso(date_match.group(1))

    lines = [line.strip() for line in normalized.split("\n")]
    lines = [line for line in lines if line]

    for i in range(1, len(lines)):
        if _POSTCODE_RE.search(lines[i]):
            result.client_name = lines[i - 1]
            break

    i = 0
    while i < len(lines):
        m = _QTY_ROW_RE.match(lines[i])
        if not m:
            i += 1
            continue

        label = lines[i + 1] if i + 1 < len(lines) else ""
        if not should_ignore_label(label):
            result.products.append(
                ParsedProduct(pdf_label=label, quantity=_parse_fr_decimal(m.group(1)))
            )

        # The stride is applied whether or not the label was kept.
        i += _ROW_STRIDE

    return result
