"""Common schemas for API requests and responses."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """Paginated listing."""

    items: list[T] = Field(default_factory=list)
    total: int = Field(default=0, description="Total rows matching the filters")
    limit: int = Field(description="Applied page size")
    offset: int = Field(default=0, description="Applied offset")


class ErrorResponse(BaseModel):
    """Standard error response."""

    success: bool = Field(default=False)
    error: str = Field(description="Error message")
    error_type: str = Field(description="Error type/class name")
    detail: dict[str, Any] | None = Field(default=None, description="Additional error details")

    model_config = {"extra": "forbid"}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Health status (healthy, degraded)")
    version: str = Field(description="Service version")
    environment: str = Field(description="Environment name")
    checks: dict[str, bool] = Field(default_factory=dict, description="Individual health checks")

    model_config = {"extra": "forbid"}


class CommentCounters(BaseModel):
    """Message counters attached to order listings."""

    messages_count: int = Field(default=0, description="Comments on the order")
    unread_count: int = Field(default=0, description="Comments by others not yet read by the caller")
