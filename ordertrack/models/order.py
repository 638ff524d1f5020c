"""Order aggregate - order header and its product lines."""

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from ordertrack.core.statuses import ExpeditionStatus, Priority, ProductionStatus
from ordertrack.models.base import Base, TimestampMixin


class Order(Base, TimestampMixin):
    """Client order identified by its ARC.

    production_status and expedition_status are cached values, always
    recomputed from the lines inside the transaction that changes them.
    """

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    arc: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    client_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    pickup_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Priority.NORMAL.value
    )
    production_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductionStatus.A_PROD.value
    )
    expedition_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ExpeditionStatus.NON_EXPEDIEE.value
    )
    production_validated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, index=True)
    created_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, arc='{self.arc}', archived={self.is_archived})>"


class OrderLine(Base):
    """Product line of an order (`order_products`).

    Quantities satisfy shipped <= ready <= ordered; loaded is staged for
    the next truck departure and bounded by ready - shipped.
    """

    __tablename__ = "order_products"
    __table_args__ = (
        CheckConstraint("quantity_ordered >= 0", name="ck_order_products_ordered"),
        CheckConstraint(
            "quantity_ready >= 0 AND quantity_ready <= quantity_ordered",
            name="ck_order_products_ready",
        ),
        CheckConstraint(
            "quantity_shipped >= 0 AND quantity_shipped <= quantity_ready",
            name="ck_order_products_shipped",
        ),
        CheckConstraint("quantity_loaded >= 0", name="ck_order_products_loaded"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("products_catalog.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    product_label_pdf: Mapped[str | None] = mapped_column(String(255), nullable=True)
    quantity_ordered: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity_ready: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity_loaded: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quantity_shipped: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def chargeable(self) -> int:
        """Quantity ready but not yet shipped."""
        return max(0, (self.quantity_ready or 0) - (self.quantity_shipped or 0))

    def __repr__(self) -> str:
        return (
            f"<OrderLine(id={self.id}, order_id={self.order_id}, ordered={self.quantity_ordered}, "
            f"ready={self.quantity_ready}, shipped={self.quantity_shipped})>"
        )
