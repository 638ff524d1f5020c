"""Shipment models - one truck departure and the quantities it carried."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ordertrack.models.base import Base, utcnow


class Shipment(Base):
    """A departure. Immutable once created except for the office acknowledgement."""

    __tablename__ = "shipments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    departed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    bureau_ack_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    bureau_ack_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    lines: Mapped[list["ShipmentLine"]] = relationship(
        "ShipmentLine",
        lazy="selectin",
        order_by="ShipmentLine.id",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Shipment(id={self.id}, order_id={self.order_id}, acked={self.bureau_ack_at is not None})>"


class ShipmentLine(Base):
    __tablename__ = "shipment_lines"
    __table_args__ = (
        CheckConstraint("quantity_loaded > 0", name="ck_shipment_lines_loaded_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    shipment_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("shipments.id", ondelete="CASCADE"),
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
    quantity_loaded: Mapped[int] = mapped_column(Integer, nullable=False)

    def __repr__(self) -> str:
        return f"<ShipmentLine(id={self.id}, shipment_id={self.shipment_id}, loaded={self.quantity_loaded})>"
