"""SQLAlchemy models for the order tracking schema."""

from ordertrack.models.base import Base, TimestampMixin, utcnow
from ordertrack.models.comment import OrderComment, OrderCommentRead
from ordertrack.models.order import Order, OrderLine
from ordertrack.models.product import Product
from ordertrack.models.shipment import Shipment, ShipmentLine
from ordertrack.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "utcnow",
    "Order",
    "OrderLine",
    "OrderComment",
    "OrderCommentRead",
    "Product",
    "Shipment",
    "ShipmentLine",
    "User",
]
