"""Tests for the production event stream."""

import asyncio
import json

import pytest

from ordertrack.api.routes.events import event_stream, format_sse
from ordertrack.core.events import EventHub, ProductionEvent


class FakeRequest:
    """Request stand-in that disconnects after a number of checks."""

    def __init__(self, checks: int) -> None:
        self.checks = checks

    async def is_disconnected(self) -> bool:
        self.checks -= 1
        return self.checks < 0


class TestEventStream:
    """Tests for the SSE generator."""

    def test_format_sse(self):
        frame = format_sse("production", {"type": "departed", "order_id": 3})

        assert frame.startswith("event: production\n")
        assert frame.endswith("\n\n")
        assert json.loads(frame.split("data: ", 1)[1]) == {"type": "departed", "order_id": 3}

    @pytest.mark.asyncio
    async def test_stream_relays_events(self):
        """The stream sends ready, then the published events, then unsubscribes."""
        hub = EventHub()
        stream = event_stream(FakeRequest(checks=1), hub, ping_seconds=5)

        assert (await stream.__anext__()).startswith("event: ready")
        assert hub.subscriber_count == 1

        hub.publish(ProductionEvent(type="ready_changed", order_id=7))
        frame = await stream.__anext__()
        assert frame.startswith("event: production")
        assert json.loads(frame.split("data: ", 1)[1])["order_id"] == 7

        with pytest.raises(StopAsyncIteration):
            await stream.__anext__()
        assert hub.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_stream_pings_when_idle(self):
        """An idle stream sends keep-alive pings."""
        hub = EventHub()
        stream = event_stream(FakeRequest(checks=5), hub, ping_seconds=0.01)

        await stream.__anext__()
        frame = await asyncio.wait_for(stream.__anext__(), timeout=1)

        assert frame.startswith("event: ping")
        await stream.aclose()
        assert hub.subscriber_count == 0
