"""Product model - catalog entry matched by its exact PDF label."""

from sqlalchemy import Boolean, CheckConstraint, Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ordertrack.models.base import Base, TimestampMixin


class Product(Base, TimestampMixin):
    """Catalog product.

    Maps to the `products_catalog` table. Imported PDF lines are resolved
    against `pdf_label_exact`; only active products are resolvable.
    """

    __tablename__ = "products_catalog"
    __table_args__ = (
        CheckConstraint("weight_per_unit_kg > 0", name="ck_products_catalog_weight_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pdf_label_exact: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(20), nullable=False)
    weight_per_unit_kg: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, label='{self.pdf_label_exact}', category='{self.category}')>"
