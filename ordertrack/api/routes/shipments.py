"""Shipment endpoints - truck loading, departures, office acknowledgement."""

from fastapi import APIRouter, Query

from ordertrack.api.deps import CurrentUserId, DbSession, commit_and_publish
from ordertrack.schemas.common import Page
from ordertrack.schemas.order import LineLoadedUpdate, LoadingOrderItem, OrderDetail
from ordertrack.schemas.shipment import (
    AckResult,
    DepartResult,
    DepartureStats,
    PendingOrder,
    ShipmentView,
)
from ordertrack.services.shipment_service import ShipmentService

router = APIRouter()


@router.get("/shipments", response_model=Page[LoadingOrderItem])
async def list_loading_worklist(
    db: DbSession,
    user_id: CurrentUserId,
    q: str | None = Query(default=None),
    limit: int = Query(default=50),
    offset: int = Query(default=0),
) -> Page[LoadingOrderItem]:
    """Orders with quantities ready to load."""
    return await ShipmentService(db).list_loading_worklist(
        q=q, limit=limit, offset=offset, user_id=user_id
    )


@router.get("/shipments/stats", response_model=DepartureStats)
async def departure_stats(
    db: DbSession,
    days: int | None = Query(default=None, ge=1),
) -> DepartureStats:
    return await ShipmentService(db).departure_stats(days)


@router.get("/bureau/shipments/pending", response_model=list[PendingOrder])
async def list_pending_shipments(db: DbSession, user_id: CurrentUserId) -> list[PendingOrder]:
    """Departures awaiting office acknowledgement."""
    return await ShipmentService(db).list_pending(user_id=user_id)


@router.patch("/{order_id}/lines/{line_id}/loaded", response_model=OrderDetail)
async def set_line_loaded(
    order_id: int,
    line_id: int,
    body: LineLoadedUpdate,
    db: DbSession,
    user_id: CurrentUserId,
) -> OrderDetail:
    detail = await ShipmentService(db).set_line_loaded(
        order_id, line_id, body.quantity_loaded, user_id=user_id
    )
    await commit_and_publish(
        db, "loaded_changed", order_id, line_id=line_id, quantity_loaded=body.quantity_loaded
    )
    return detail


@router.post("/{order_id}/shipments/depart", response_model=DepartResult)
async def depart(order_id: int, db: DbSession, user_id: CurrentUserId) -> DepartResult:
    result = await ShipmentService(db).depart(order_id, created_by=user_id)
    await commit_and_publish(
        db,
        "departed",
        order_id,
        shipment_id=result.shipment.id,
        expedition_status=result.order.expedition_status,
    )
    return result


@router.post("/{order_id}/shipments/ack", response_model=AckResult)
async def acknowledge(order_id: int, db: DbSession, user_id: CurrentUserId) -> AckResult:
    result = await ShipmentService(db).acknowledge(order_id, acked_by=user_id)
    await commit_and_publish(
        db, "acknowledged", order_id, acked_count=result.acked_count, archived=result.archived
    )
    return result


@router.get("/{order_id}/shipments", response_model=list[ShipmentView])
async def list_order_shipments(order_id: int, db: DbSession) -> list[ShipmentView]:
    return await ShipmentService(db).list_order_shipments(order_id)
