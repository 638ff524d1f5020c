"""Order endpoints - office listings, detail, update, delete, history."""

from fastapi import APIRouter, Query, Response, status

from ordertrack.api.deps import CurrentUserId, DbSession, commit_and_publish
from ordertrack.infra.logging import get_logger
from ordertrack.schemas.common import Page
from ordertrack.schemas.order import OrderDetail, OrderListItem, OrderUpdateRequest
from ordertrack.schemas.shipment import ArchivedOrderDetail, ArchivedOrderItem
from ordertrack.services.order_service import OrderService

router = APIRouter()
logger = get_logger(__name__)


@router.get("/active", response_model=Page[OrderListItem])
async def list_active_orders(
    db: DbSession,
    user_id: CurrentUserId,
    q: str | None = Query(default=None, description="ARC or client name"),
    priority: str | None = Query(default=None),
    state: str | None = Query(default=None, description="Derived order state"),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
) -> Page[OrderListItem]:
    """Non-archived orders with state and comment counters."""
    return await OrderService(db).list_active_orders(
        q=q, priority=priority, state=state, limit=limit, offset=offset, user_id=user_id
    )


@router.get("/history", response_model=Page[ArchivedOrderItem])
async def list_archived_orders(
    db: DbSession,
    q: str | None = Query(default=None),
    days: int | None = Query(default=None, ge=1, description="Last departure within N days"),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
) -> Page[ArchivedOrderItem]:
    return await OrderService(db).list_archived_orders(q=q, days=days, limit=limit, offset=offset)


@router.get("/history/{order_id}", response_model=ArchivedOrderDetail)
async def get_order_history(order_id: int, db: DbSession) -> ArchivedOrderDetail:
    return await OrderService(db).get_order_history(order_id)


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order(order_id: int, db: DbSession, user_id: CurrentUserId) -> OrderDetail:
    return await OrderService(db).get_order_detail(order_id, user_id=user_id)


@router.patch("/{order_id}", response_model=OrderDetail)
async def update_order(
    order_id: int,
    body: OrderUpdateRequest,
    db: DbSession,
    user_id: CurrentUserId,
) -> OrderDetail:
    """Update order fields and/or replace its lines (full desired state)."""
    patch = body.model_dump(exclude_unset=True, exclude={"lines"})
    lines = body.lines if "lines" in body.model_fields_set else None

    detail = await OrderService(db).update_order(order_id, patch, lines, user_id=user_id)
    await commit_and_publish(
        db,
        "order_updated",
        order_id,
        lines_synced=lines is not None,
        production_status=detail.order.production_status,
    )
    return detail


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def delete_order(order_id: int, db: DbSession, user_id: CurrentUserId) -> Response:
    await OrderService(db).delete_order(order_id)
    await commit_and_publish(db, "order_deleted", order_id)
    logger.info("Order deletion requested", order_id=order_id, user_id=user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
