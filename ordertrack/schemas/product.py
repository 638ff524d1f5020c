"""Catalog product schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProductCreate(BaseModel):
    pdf_label_exact: str = Field(description="Exact label as printed on supplier PDFs")
    category: str = Field(description="BIGBAG, ROCHE or AUTRE")
    weight_per_unit_kg: float = Field(description="Unit weight in kilograms")
    is_active: bool = True

    model_config = {"extra": "forbid"}


class ProductUpdate(BaseModel):
    pdf_label_exact: str | None = None
    category: str | None = None
    weight_per_unit_kg: float | None = None
    is_active: bool | None = None

    model_config = {"extra": "forbid"}


class ProductView(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    pdf_label_exact: str
    category: str
    weight_per_unit_kg: float
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
    usage_count: int = Field(default=0, description="Order and shipment lines referencing the product")
