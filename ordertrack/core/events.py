"""In-process pub/sub hub for production events.

Stores publish after their transaction commits; subscribers (SSE streams)
each own a bounded queue. Publishing never blocks: an event is dropped
for a subscriber whose queue is full.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from ordertrack.config import settings
from ordertrack.infra.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProductionEvent:
    """A domain event about an order.

    Attributes:
        type: Event kind (ready_changed, loaded_changed, departed, ...)
        order_id: Order concerned
        data: Extra payload (line id, quantities, statuses)
    """

    type: str
    order_id: int | None = None
    data: dict[str, Any] = field(default_factory=dict)
    at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "order_id": self.order_id, "at": self.at, **self.data}


class EventHub:
    """Fan-out of production events to live subscribers."""

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[ProductionEvent]] = set()
        self.dropped = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[ProductionEvent]:
        queue: asyncio.Queue[ProductionEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.debug("Event subscriber added", subscribers=len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ProductionEvent]) -> None:
        self._subscribers.discard(queue)
        logger.debug("Event subscriber removed", subscribers=len(self._subscribers))

    def publish(self, event: ProductionEvent) -> int:
        """Deliver an event to every subscriber without waiting.

        Returns:
            Number of subscribers that received the event
        """
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                self.dropped += 1
                logger.warning(
                    "Event dropped for slow subscriber",
                    event_type=event.type,
                    order_id=event.order_id,
                )
        return delivered


# Global singleton instance
_event_hub: EventHub | None = None


def get_event_hub() -> EventHub:
    """Get or create the global event hub."""
    global _event_hub

    if _event_hub is None:
        _event_hub = EventHub(queue_size=settings.event_queue_size)

    return _event_hub


def publish_event(event_type: str, order_id: int | None = None, **data: Any) -> int:
    """Publish on the global hub."""
    return get_event_hub().publish(ProductionEvent(type=event_type, order_id=order_id, data=data))
