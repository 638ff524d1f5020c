"""Core business logic - parsing, statuses, errors, in-memory stores."""

from ordertrack.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    OrderTrackError,
    PayloadTooLargeError,
    UnprocessableError,
)
from ordertrack.core.events import EventHub, ProductionEvent, get_event_hub, publish_event
from ordertrack.core.pdf_parser import ParsedOrder, ParsedProduct, parse_order_text
from ordertrack.core.preview_store import ImportPreview, PreviewStore, get_preview_store

__all__ = [
    "OrderTrackError",
    "InvalidInputError",
    "NotFoundError",
    "ConflictError",
    "PayloadTooLargeError",
    "UnprocessableError",
    "EventHub",
    "ProductionEvent",
    "get_event_hub",
    "publish_event",
    "ParsedOrder",
    "ParsedProduct",
    "parse_order_text",
    "ImportPreview",
    "PreviewStore",
    "get_preview_store",
]
