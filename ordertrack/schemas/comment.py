"""Comment thread schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from ordertrack.schemas.common import CommentCounters


class CommentCreate(BaseModel):
    content: str = Field(description="Message text, trimmed and non-empty")

    model_config = {"extra": "forbid"}


class CommentView(BaseModel):
    id: int
    order_id: int
    author_id: int | None = None
    author_name: str | None = None
    content: str
    created_at: datetime


class CommentThread(CommentCounters):
    """Comments of an order, oldest first."""

    order_id: int
    comments: list[CommentView] = Field(default_factory=list)
