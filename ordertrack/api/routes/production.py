"""Production endpoints - worklist, ready quantities, validation, stats."""

from fastapi import APIRouter, Query

from ordertrack.api.deps import CurrentUserId, DbSession, commit_and_publish
from ordertrack.schemas.common import Page
from ordertrack.schemas.order import (
    LineReadyUpdate,
    OrderDetail,
    OrderView,
    ProducedStats,
    ProductionOrderItem,
)
from ordertrack.services.production_service import ProductionService

router = APIRouter()


@router.get("/production", response_model=Page[ProductionOrderItem])
async def list_production_orders(
    db: DbSession,
    user_id: CurrentUserId,
    q: str | None = Query(default=None),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
) -> Page[ProductionOrderItem]:
    """Orders to produce, most urgent first."""
    return await ProductionService(db).list_production_orders(
        q=q, limit=limit, offset=offset, user_id=user_id
    )


@router.get("/produced", response_model=ProducedStats)
async def produced_stats(
    db: DbSession,
    period: str = Query(default="7D", description="7D, 30D, 90D or ALL"),
) -> ProducedStats:
    return await ProductionService(db).produced_stats(period)


@router.patch("/{order_id}/lines/{line_id}/ready", response_model=OrderDetail)
async def set_line_ready(
    order_id: int,
    line_id: int,
    body: LineReadyUpdate,
    db: DbSession,
    user_id: CurrentUserId,
) -> OrderDetail:
    detail = await ProductionService(db).set_line_ready(
        order_id, line_id, body.quantity_ready, user_id=user_id
    )
    await commit_and_publish(
        db,
        "ready_changed",
        order_id,
        line_id=line_id,
        quantity_ready=body.quantity_ready,
        production_status=detail.order.production_status,
    )
    return detail


@router.post("/{order_id}/production-validate", response_model=OrderView)
async def validate_production(order_id: int, db: DbSession) -> OrderView:
    order = await ProductionService(db).validate_production(order_id)
    await commit_and_publish(db, "production_validated", order_id)
    return order
