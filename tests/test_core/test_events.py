"""Tests for the production event hub."""

import pytest

from ordertrack.core.events import EventHub, ProductionEvent


class TestEventHub:
    """Tests for EventHub."""

    @pytest.mark.asyncio
    async def test_publish_reaches_every_subscriber(self) -> None:
        """Each subscriber receives its own copy of the event."""
        hub = EventHub(queue_size=10)
        first = hub.subscribe()
        second = hub.subscribe()

        delivered = hub.publish(ProductionEvent(type="ready_changed", order_id=1, data={"line_id": 2}))

        assert delivered == 2
        assert (await first.get()).order_id == 1
        assert (await second.get()).data == {"line_id": 2}

    @pytest.mark.asyncio
    async def test_full_queue_drops_events(self) -> None:
        """A slow subscriber loses events instead of blocking publishers."""
        hub = EventHub(queue_size=1)
        queue = hub.subscribe()

        assert hub.publish(ProductionEvent(type="a")) == 1
        assert hub.publish(ProductionEvent(type="b")) == 0
        assert hub.dropped == 1
        assert (await queue.get()).type == "a"

    @pytest.mark.asyncio
    async def test_unsubscribe(self) -> None:
        """Unsubscribed queues receive nothing."""
        hub = EventHub()
        queue = hub.subscribe()
        hub.unsubscribe(queue)

        assert hub.subscriber_count == 0
        assert hub.publish(ProductionEvent(type="departed")) == 0
        assert queue.empty()

    def test_event_to_dict(self) -> None:
        """The wire form flattens the payload next to type and order id."""
        event = ProductionEvent(type="departed", order_id=4, data={"shipment_id": 9})
        data = event.to_dict()

        assert data["type"] == "departed"
        assert data["order_id"] == 4
        assert data["shipment_id"] == 9
        assert "at" in data
