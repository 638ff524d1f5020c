"""PDF import schemas - preview upload and confirmation."""

from typing import Any

from pydantic import BaseModel, Field


class PreviewProduct(BaseModel):
    pdf_label: str | None = None
    quantity: int | float | str | None = None


class PreviewPayload(BaseModel):
    """Order preview as edited by the office before confirmation.

    Values are kept loose here and validated by the import service, so
    that every rejection carries a business message.
    """

    arc: str | None = None
    client_name: str | None = None
    order_date: str | None = None
    pickup_date: str | None = None
    priority: str | None = None
    products: list[PreviewProduct] | None = None


class Dedupe(BaseModel):
    match: bool = False
    existing_order_id: int | None = None
    message: str | None = None


class PreviewResponse(BaseModel):
    status: str = "preview"
    import_id: str
    preview: dict[str, Any]
    meta: dict[str, Any] = Field(default_factory=dict)
    dedupe: Dedupe = Field(default_factory=Dedupe)
    ttl_seconds: float


class ConfirmRequest(BaseModel):
    preview: PreviewPayload
    internal_comment: str | None = None

    model_config = {"extra": "forbid"}


class ConfirmResponse(BaseModel):
    status: str = "confirmed"
    action: str = Field(description="created or skipped")
    order_id: int
    arc: str
    internal_comment_saved: bool = False
    message: str | None = None
