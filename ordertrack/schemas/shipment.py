"""Shipment schemas - departures, acknowledgement, office pending list."""

from datetime import datetime

from pydantic import BaseModel, Field

from ordertrack.schemas.common import CommentCounters
from ordertrack.schemas.order import OrderLineView, OrderView


class ShipmentLineView(BaseModel):
    id: int
    product_id: int
    label: str
    category: str | None = None
    quantity_loaded: int


class ShipmentView(BaseModel):
    id: int
    order_id: int
    departed_at: datetime
    bureau_ack_at: datetime | None = None
    bureau_ack_by: int | None = None
    created_by: int | None = None
    lines: list[ShipmentLineView] = Field(default_factory=list)


class DepartResult(BaseModel):
    """Outcome of a truck departure."""

    shipment: ShipmentView
    order: OrderView
    lines: list[OrderLineView] = Field(default_factory=list)


class AckResult(BaseModel):
    order_id: int
    acked_count: int = Field(description="Shipments acknowledged by this call")
    archived: bool


class RemainingLine(BaseModel):
    product_id: int
    label: str
    quantity: int


class ShipmentRecap(BaseModel):
    shipped_total: int = 0
    ordered_total: int = 0


class PendingOrder(CommentCounters):
    """Order with departures awaiting office acknowledgement."""

    order: OrderView
    last_departed_at: datetime | None = None
    shipments: list[ShipmentView] = Field(default_factory=list)
    remaining: list[RemainingLine] = Field(default_factory=list)
    recap: ShipmentRecap = Field(default_factory=ShipmentRecap)


class DepartureStats(BaseModel):
    days: int | None = None
    since: datetime | None = None
    orders_count: int = 0
    shipments_count: int = 0
    bigbag_total: int = 0
    roche_total: int = 0


class ArchivedOrderItem(OrderView):
    last_departed_at: datetime | None = None
    shipments_count: int = 0


class ArchivedOrderDetail(BaseModel):
    order: OrderView
    lines: list[OrderLineView] = Field(default_factory=list)
    shipments: list[ShipmentView] = Field(default_factory=list)
    recap: ShipmentRecap = Field(default_factory=ShipmentRecap)
    last_departed_at: datetime | None = None
