"""Order schemas - line sync input, order read models, listings."""

from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field

from ordertrack.core.statuses import LoadingStatus, OrderState
from ordertrack.schemas.common import CommentCounters


class OrderLineInput(BaseModel):
    """One line of the desired state sent on order update.

    Lines without id are inserted; the product is taken from product_id,
    or resolved from label against the catalog.
    """

    id: int | None = Field(default=None, description="Existing line id")
    product_id: int | None = Field(default=None, description="Catalog product id")
    label: str | None = Field(default=None, description="PDF label used when product_id is omitted")
    quantity: int = Field(description="Ordered quantity")

    model_config = {"extra": "forbid"}


class OrderCreate(BaseModel):
    """Header of a new order."""

    arc: str = Field(min_length=1, description="Client order reference")
    client_name: str | None = Field(default=None)
    order_date: date
    pickup_date: date | None = None
    priority: str = Field(default="NORMAL")

    model_config = {"extra": "forbid"}


class OrderUpdateRequest(BaseModel):
    """Partial update of an order. Absent fields are left untouched."""

    arc: str | None = None
    client_name: str | None = None
    order_date: date | None = None
    pickup_date: date | None = None
    priority: str | None = None
    lines: list[OrderLineInput] | None = Field(
        default=None,
        description="Full desired list of lines",
    )

    model_config = {"extra": "forbid"}


class LineReadyUpdate(BaseModel):
    quantity_ready: int

    model_config = {"extra": "forbid"}


class LineLoadedUpdate(BaseModel):
    quantity_loaded: int

    model_config = {"extra": "forbid"}


class OrderView(BaseModel):
    """Order header with its derived business state."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    arc: str
    client_name: str | None = None
    order_date: date
    pickup_date: date | None = None
    priority: str
    production_status: str
    expedition_status: str
    state: OrderState = OrderState.UNKNOWN
    state_label: str = ""
    is_archived: bool = False
    production_validated_at: datetime | None = None
    created_by: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OrderLineView(BaseModel):
    """Order line with display label and catalog attributes."""

    id: int
    product_id: int
    label: str = Field(description="Frozen PDF label, or catalog label")
    pdf_label: str | None = None
    catalog_label: str | None = None
    category: str | None = None
    weight_per_unit_kg: float | None = None
    quantity_ordered: int
    quantity_ready: int
    quantity_loaded: int
    quantity_shipped: int
    remaining: int = Field(description="Ordered minus shipped")


class OrderDetail(BaseModel):
    order: OrderView
    lines: list[OrderLineView] = Field(default_factory=list)
    counters: CommentCounters = Field(default_factory=CommentCounters)


class OrderListItem(OrderView, CommentCounters):
    pass


class ProductionOrderItem(OrderListItem):
    """Production worklist entry."""

    bigbag_total: int = Field(default=0, description="Ordered BigBag and SmallBag units")
    roche_total: int = Field(default=0, description="Ordered Roche units")
    lines: list[OrderLineView] = Field(default_factory=list)


class LoadingOrderItem(OrderListItem):
    """Truck loading worklist entry."""

    chargeable_total: int = Field(default=0, description="Ready minus shipped over all lines")
    loaded_total: int = Field(default=0, description="Units staged for the next departure")
    loading_status: LoadingStatus = LoadingStatus.TODO
    lines: list[OrderLineView] = Field(default_factory=list)


class ProducedStats(BaseModel):
    period: str
    since: datetime | None = None
    orders_count: int = 0
    bigbag_total: int = 0
    roche_total: int = 0
