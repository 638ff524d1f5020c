"""Pydantic schemas for API requests and responses."""

from ordertrack.schemas.comment import CommentCreate, CommentThread, CommentView
from ordertrack.schemas.common import CommentCounters, ErrorResponse, HealthResponse, Page
from ordertrack.schemas.order import (
    LineLoadedUpdate,
    LineReadyUpdate,
    LoadingOrderItem,
    OrderCreate,
    OrderDetail,
    OrderLineInput,
    OrderLineView,
    OrderListItem,
    OrderUpdateRequest,
    OrderView,
    ProducedStats,
    ProductionOrderItem,
)
from ordertrack.schemas.pdf_import import (
    ConfirmRequest,
    ConfirmResponse,
    Dedupe,
    PreviewPayload,
    PreviewProduct,
    PreviewResponse,
)
from ordertrack.schemas.product import ProductCreate, ProductUpdate, ProductView
from ordertrack.schemas.shipment import (
    AckResult,
    ArchivedOrderDetail,
    ArchivedOrderItem,
    DepartResult,
    DepartureStats,
    PendingOrder,
    RemainingLine,
    ShipmentLineView,
    ShipmentRecap,
    ShipmentView,
)

__all__ = [
    "Page",
    "ErrorResponse",
    "HealthResponse",
    "CommentCounters",
    "CommentCreate",
    "CommentThread",
    "CommentView",
    "OrderCreate",
    "OrderUpdateRequest",
    "OrderLineInput",
    "LineReadyUpdate",
    "LineLoadedUpdate",
    "OrderView",
    "OrderLineView",
    "OrderDetail",
    "OrderListItem",
    "ProductionOrderItem",
    "LoadingOrderItem",
    "ProducedStats",
    "ConfirmRequest",
    "ConfirmResponse",
    "Dedupe",
    "PreviewPayload",
    "PreviewProduct",
    "PreviewResponse",
    "ProductCreate",
    "ProductUpdate",
    "ProductView",
    "AckResult",
    "ArchivedOrderDetail",
    "ArchivedOrderItem",
    "DepartResult",
    "DepartureStats",
    "PendingOrder",
    "RemainingLine",
    "ShipmentLineView",
    "ShipmentRecap",
    "ShipmentView",
]
