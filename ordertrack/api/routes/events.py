"""Server-sent events stream for production screens."""

import asyncio
import json
from typing import Any, AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from ordertrack.config import settings
from ordertrack.core.events import EventHub, get_event_hub
from ordertrack.infra.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


def format_sse(event: str, data: Any) -> str:
    """Encode one SSE frame."""
    return f"event: {event}\ndata: {json.dumps(data, default=str)}\n\n"


async def event_stream(
    request: Request,
    hub: EventHub,
    ping_seconds: float,
) -> AsyncIterator[str]:
    """Yield a ready frame, then every published event, with periodic pings."""
    queue = hub.subscribe()
    try:
        yield format_sse("ready", {"ok": True})
        while True:
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=ping_seconds)
            except asyncio.TimeoutError:
                yield format_sse("ping", {})
                continue
            yield format_sse("production", event.to_dict())
    finally:
        hub.unsubscribe(queue)
        logger.debug("Production event stream closed")


@router.get("/production")
async def production_events(request: Request) -> StreamingResponse:
    return StreamingResponse(
        event_stream(request, get_event_hub(), settings.sse_ping_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
