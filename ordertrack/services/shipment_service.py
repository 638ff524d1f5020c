"""Shipment dispatcher - truck loading, departures and office acknowledgement."""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, or_, select

from ordertrack.config import settings
from ordertrack.core.errors import ConflictError, InvalidInputError, NotFoundError
from ordertrack.core.quantities import as_non_negative_int, clamp_limit, clamp_offset
from ordertrack.core.statuses import (
    BIGBAG_CATEGORIES,
    ExpeditionStatus,
    ProductCategory,
    derive_expedition_status,
    derive_loading_status,
)
from ordertrack.infra.logging import get_logger
from ordertrack.models import Order, OrderLine, Product, Shipment, ShipmentLine, utcnow
from ordertrack.schemas.common import Page
from ordertrack.schemas.order import LoadingOrderItem, OrderDetail
from ordertrack.schemas.shipment import (
    AckResult,
    DepartResult,
    DepartureStats,
    PendingOrder,
    RemainingLine,
    ShipmentRecap,
    ShipmentView,
)
from ordertrack.services.base import BaseStoreService, line_view, order_view, priority_ordering
from ordertrack.services.comment_service import comment_counts

logger = get_logger(__name__)


class ShipmentService(BaseStoreService):
    """Loading, departure and acknowledgement of shipments."""

    async def set_line_loaded(
        self,
        order_id: int,
        line_id: int,
        loaded: Any,
        user_id: int | None = None,
    ) -> OrderDetail:
        """Stage the quantity of a line loaded on the truck.

        Raises:
            InvalidInputError: Not an integer >= 0
            NotFoundError: Unknown order or line
            ConflictError: More than ready - shipped
        """
        qty = as_non_negative_int(loaded)
        if qty is None:
            raise InvalidInputError("Quantité chargée invalide (entier >= 0 attendu)")

        order = await self.get_order(order_id, for_update=True)
        lines = await self.get_lines(order.id, for_update=True)
        line = next((item for item in lines if item.id == line_id), None)
        if line is None:
            raise NotFoundError("Ligne introuvable", order_id=order_id, line_id=line_id)

        if qty > line.chargeable:
            raise ConflictError(
                "Quantité chargée supérieure au disponible (prêt - expédié)",
                line_id=line_id,
                maximum=line.chargeable,
            )

        line.quantity_loaded = qty
        await self.session.flush()

        logger.info("Line loaded quantity set", order_id=order.id, line_id=line_id, loaded=qty)
        return await self.order_detail(order, user_id)

    async def depart(self, order_id: int, created_by: int | None = None) -> DepartResult:
        """Record a truck departure with everything currently loaded.

        Creates one shipment line per loaded order line, moves loaded into
        shipped and recomputes the expedition status.

        Raises:
            NotFoundError: Unknown order
            ConflictError: Nothing loaded
        """
        order = await self.get_order(order_id, for_update=True)
        lines = await self.get_lines(order.id, for_update=True)

        loaded = [line for line in lines if line.quantity_loaded > 0]
        if not loaded:
            raise ConflictError("Rien à expédier : aucune quantité chargée", order_id=order.id)

        for line in loaded:
            if line.quantity_loaded > line.chargeable:
                raise ConflictError(
                    "Quantité chargée supérieure au disponible (prêt - expédié)",
                    line_id=line.id,
                    maximum=line.chargeable,
                )

        shipment = Shipment(
            order_id=order.id,
            departed_at=utcnow(),
            created_by=created_by,
            lines=[
                ShipmentLine(
                    product_id=line.product_id,
                    product_label_pdf=line.product_label_pdf,
                    quantity_loaded=line.quantity_loaded,
                )
                for line in loaded
            ],
        )
        self.session.add(shipment)

        for line in loaded:
            line.quantity_shipped += line.quantity_loaded
            line.quantity_loaded = 0

        order.expedition_status = derive_expedition_status(lines).value
        await self.session.flush()

        logger.info(
            "Truck departed",
            order_id=order.id,
            shipment_id=shipment.id,
            lines=len(loaded),
            expedition_status=order.expedition_status,
        )
        views = await self.shipment_views([shipment])
        return DepartResult(
            shipment=views[0],
            order=order_view(order),
            lines=await self.line_views(order.id),
        )

    async def acknowledge(self, order_id: int, acked_by: int | None = None) -> AckResult:
        """Office acknowledgement of every pending departure.

        A fully shipped order is archived in the same transaction.

        Raises:
            NotFoundError: Unknown order
            ConflictError: Order already archived
        """
        order = await self.get_order(order_id, for_update=True)
        if order.is_archived:
            raise ConflictError("Commande déjà archivée", order_id=order.id)

        stmt = (
            select(Shipment)
            .where(Shipment.order_id == order.id, Shipment.bureau_ack_at.is_(None))
            .with_for_update()
        )
        pending = list((await self.session.execute(stmt)).scalars().all())

        now = utcnow()
        for shipment in pending:
            shipment.bureau_ack_at = now
            shipment.bureau_ack_by = acked_by

        lines = await self.get_lines(order.id, for_update=True)
        status = derive_expedition_status(lines)
        order.expedition_status = status.value
        archived = status == ExpeditionStatus.EXP_COMPLETE
        if archived:
            order.is_archived = True

        await self.session.flush()

        logger.info(
            "Shipments acknowledged",
            order_id=order.id,
            acked_count=len(pending),
            archived=archived,
        )
        return AckResult(order_id=order.id, acked_count=len(pending), archived=archived)

    async def list_pending(self, user_id: int | None = None) -> list[PendingOrder]:
        """Active orders with departures not yet acknowledged, latest departure first."""
        stmt = (
            select(Shipment)
            .join(Order, Order.id == Shipment.order_id)
            .where(Order.is_archived.is_(False), Shipment.bureau_ack_at.is_(None))
            .order_by(Shipment.departed_at.desc(), Shipment.id.desc())
        )
        shipments = list((await self.session.execute(stmt)).scalars().all())
        if not shipments:
            return []

        by_order: dict[int, list[Shipment]] = {}
        for shipment in shipments:
            by_order.setdefault(shipment.order_id, []).append(shipment)

        ids = list(by_order)
        orders = {
            o.id: o
            for o in (await self.session.execute(select(Order).where(Order.id.in_(ids)))).scalars().all()
        }
        lines = await self.lines_with_products(ids)
        counts = await comment_counts(self.session, ids, user_id)

        result = []
        for order_id in ids:
            rows = lines[order_id]
            views = await self.shipment_views(by_order[order_id])
            result.append(
                PendingOrder(
                    order=order_view(orders[order_id]),
                    last_departed_at=views[0].departed_at,
                    shipments=views,
                    remaining=self._remaining(rows),
                    recap=ShipmentRecap(
                        shipped_total=sum(line.quantity_shipped for line, _ in rows),
                        ordered_total=sum(line.quantity_ordered for line, _ in rows),
                    ),
                    **counts[order_id].model_dump(),
                )
            )
        return result

    async def list_loading_worklist(
        self,
        q: str | None = None,
        limit: Any = None,
        offset: Any = 0,
        user_id: int | None = None,
    ) -> Page[LoadingOrderItem]:
        """Orders with something ready and not shipped yet, by priority."""
        lim = clamp_limit(limit, default=settings.page_limit_default, maximum=settings.page_limit_max)
        off = clamp_offset(offset)

        totals = (
            select(
                OrderLine.order_id.label("order_id"),
                func.sum(OrderLine.quantity_ready - OrderLine.quantity_shipped).label("chargeable_total"),
                func.sum(OrderLine.quantity_loaded).label("loaded_total"),
            )
            .group_by(OrderLine.order_id)
            .subquery()
        )

        filters: list[Any] = [Order.is_archived.is_(False), totals.c.chargeable_total > 0]
        term = (q or "").strip()
        if term:
            like = f"%{term}%"
            filters.append(or_(Order.arc.ilike(like), Order.client_name.ilike(like)))

        base = select(Order.id).join(totals, totals.c.order_id == Order.id).where(*filters)
        total = await self.session.scalar(select(func.count()).select_from(base.subquery()))

        stmt = (
            select(Order, totals.c.chargeable_total, totals.c.loaded_total)
            .join(totals, totals.c.order_id == Order.id)
            .where(*filters)
            .order_by(*priority_ordering())
            .limit(lim)
            .offset(off)
        )
        rows = (await self.session.execute(stmt)).all()

        ids = [order.id for order, _, _ in rows]
        lines = await self.lines_with_products(ids)
        counts = await comment_counts(self.session, ids, user_id)

        items = []
        for order, chargeable_total, loaded_total in rows:
            chargeable = int(chargeable_total or 0)
            loaded = int(loaded_total or 0)
            items.append(
                LoadingOrderItem(
                    **order_view(order).model_dump(),
                    **counts[order.id].model_dump(),
                    chargeable_total=chargeable,
                    loaded_total=loaded,
                    loading_status=derive_loading_status(chargeable, loaded),
                    lines=[line_view(line, product) for line, product in lines[order.id]],
                )
            )
        return Page[LoadingOrderItem](items=items, total=int(total or 0), limit=lim, offset=off)

    async def list_order_shipments(self, order_id: int) -> list[ShipmentView]:
        order = await self.get_order(order_id)
        return await self.shipment_views(await self.order_shipments(order.id))

    async def departure_stats(self, days: int | None = None) -> DepartureStats:
        """Departures over the last `days` days (all time when unset)."""
        if days is not None and days < 1:
            raise InvalidInputError("days doit être positif")
        since: datetime | None = utcnow() - timedelta(days=days) if days else None

        filters: list[Any] = []
        if since is not None:
            filters.append(Shipment.departed_at >= since)

        counts = (
            await self.session.execute(
                select(
                    func.count(func.distinct(Shipment.order_id)),
                    func.count(Shipment.id),
                ).where(*filters)
            )
        ).one()

        stmt = (
            select(Product.category, func.coalesce(func.sum(ShipmentLine.quantity_loaded), 0))
            .select_from(ShipmentLine)
            .join(Shipment, Shipment.id == ShipmentLine.shipment_id)
            .join(Product, Product.id == ShipmentLine.product_id)
            .where(*filters)
            .group_by(Product.category)
        )
        bigbag = 0
        roche = 0
        for category, total in (await self.session.execute(stmt)).all():
            if category in BIGBAG_CATEGORIES:
                bigbag += int(total or 0)
            elif category == ProductCategory.ROCHE.value:
                roche += int(total or 0)

        return DepartureStats(
            days=days,
            since=since,
            orders_count=int(counts[0] or 0),
            shipments_count=int(counts[1] or 0),
            bigbag_total=bigbag,
            roche_total=roche,
        )

    @staticmethod
    def _remaining(rows) -> list[RemainingLine]:
        """Quantities still to ship, summed per product."""
        remaining: dict[int, RemainingLine] = {}
        for line, product in rows:
            left = line.quantity_ordered - line.quantity_shipped
            if left <= 0:
                continue
            if line.product_id in remaining:
                remaining[line.product_id].quantity += left
            else:
                remaining[line.product_id] = RemainingLine(
                    product_id=line.product_id,
                    label=line.product_label_pdf or product.pdf_label_exact,
                    quantity=left,
                )
        return list(remaining.values())
