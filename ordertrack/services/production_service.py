"""Production tracker - ready quantities, validation and the production worklist."""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import and_, case, func, or_, select

from ordertrack.config import settings
from ordertrack.core.errors import ConflictError, InvalidInputError, NotFoundError
from ordertrack.core.quantities import as_non_negative_int, clamp_limit, clamp_offset
from ordertrack.core.statuses import (
    BIGBAG_CATEGORIES,
    ProductCategory,
    ProductionStatus,
    derive_production_status,
)
from ordertrack.infra.logging import get_logger
from ordertrack.models import Order, OrderLine, Product, utcnow
from ordertrack.schemas.common import Page
from ordertrack.schemas.order import OrderDetail, OrderView, ProducedStats, ProductionOrderItem
from ordertrack.services.base import (
    BaseStoreService,
    category_totals,
    line_view,
    order_view,
    priority_ordering,
)
from ordertrack.services.comment_service import comment_counts

logger = get_logger(__name__)

PRODUCED_PERIODS: dict[str, int | None] = {
    "7D": 7,
    "30D": 30,
    "90D": 90,
    "ALL": None,
}


class ProductionService(BaseStoreService):
    """Workshop side of an order: what is ready, what is left to produce."""

    async def set_line_ready(
        self,
        order_id: int,
        line_id: int,
        ready: Any,
        user_id: int | None = None,
    ) -> OrderDetail:
        """Set the ready quantity of a line.

        The value must stay within [shipped, ordered]. A staged loaded
        quantity above the new ready - shipped is clamped down. Any change
        cancels a previous production validation.

        Raises:
            InvalidInputError: Not an integer >= 0, or above ordered
            NotFoundError: Unknown order or line
            ConflictError: Below the quantity already shipped
        """
        qty = as_non_negative_int(ready)
        if qty is None:
            raise InvalidInputError("Quantité prête invalide (entier >= 0 attendu)")

        order = await self.get_order(order_id, for_update=True)
        lines = await self.get_lines(order.id, for_update=True)
        line = next((item for item in lines if item.id == line_id), None)
        if line is None:
            raise NotFoundError("Ligne introuvable", order_id=order_id, line_id=line_id)

        if qty > line.quantity_ordered:
            raise InvalidInputError(
                "Quantité prête hors limites",
                line_id=line_id,
                minimum=line.quantity_shipped,
                maximum=line.quantity_ordered,
            )
        if qty < line.quantity_shipped:
            raise ConflictError(
                "Quantité prête inférieure à la quantité déjà expédiée",
                line_id=line_id,
                minimum=line.quantity_shipped,
            )

        previous = line.quantity_ready
        line.quantity_ready = qty
        max_loaded = qty - line.quantity_shipped
        if line.quantity_loaded > max_loaded:
            line.quantity_loaded = max_loaded

        order.production_validated_at = None
        order.production_status = derive_production_status(lines).value
        await self.session.flush()

        logger.info(
            "Line ready quantity set",
            order_id=order.id,
            line_id=line_id,
            previous=previous,
            ready=qty,
            production_status=order.production_status,
        )
        return await self.order_detail(order, user_id)

    async def validate_production(self, order_id: int) -> OrderView:
        """Stamp the manual validation of a fully produced order.

        Raises:
            NotFoundError: Unknown order
            ConflictError: Production not complete, or already validated
        """
        order = await self.get_order(order_id, for_update=True)
        lines = await self.get_lines(order.id, for_update=True)

        status = derive_production_status(lines)
        order.production_status = status.value
        if status != ProductionStatus.PROD_COMPLETE:
            raise ConflictError("Production non terminée", production_status=status.value)
        if order.production_validated_at is not None:
            raise ConflictError("Production déjà validée", order_id=order.id)

        order.production_validated_at = utcnow()
        await self.session.flush()

        logger.info("Production validated", order_id=order.id, arc=order.arc)
        return order_view(order)

    async def list_production_orders(
        self,
        q: str | None = None,
        limit: Any = None,
        offset: Any = 0,
        user_id: int | None = None,
    ) -> Page[ProductionOrderItem]:
        """Orders still to produce, or produced but not yet validated.

        Sorted by priority, then pickup date (unset last), then newest.
        """
        lim = clamp_limit(limit, default=settings.page_limit_default, maximum=settings.page_limit_max)
        off = clamp_offset(offset)

        filters: list[Any] = [
            Order.is_archived.is_(False),
            or_(
                Order.production_status.in_(
                    [ProductionStatus.A_PROD.value, ProductionStatus.PROD_PARTIELLE.value]
                ),
                and_(
                    Order.production_status == ProductionStatus.PROD_COMPLETE.value,
                    Order.production_validated_at.is_(None),
                ),
            ),
        ]
        term = (q or "").strip()
        if term:
            like = f"%{term}%"
            filters.append(or_(Order.arc.ilike(like), Order.client_name.ilike(like)))

        total = await self.session.scalar(select(func.count(Order.id)).where(*filters))
        stmt = select(Order).where(*filters).order_by(*priority_ordering()).limit(lim).offset(off)
        orders = list((await self.session.execute(stmt)).scalars().all())

        ids = [o.id for o in orders]
        lines = await self.lines_with_products(ids)
        counts = await comment_counts(self.session, ids, user_id)

        items = []
        for order in orders:
            rows = lines[order.id]
            bigbag, roche = category_totals(rows)
            items.append(
                ProductionOrderItem(
                    **order_view(order).model_dump(),
                    **counts[order.id].model_dump(),
                    bigbag_total=bigbag,
                    roche_total=roche,
                    lines=[line_view(line, product) for line, product in rows],
                )
            )
        return Page[ProductionOrderItem](items=items, total=int(total or 0), limit=lim, offset=off)

    async def produced_stats(self, period: str | None = "7D") -> ProducedStats:
        """Validated orders and produced units over a period.

        A line counts max(ready, shipped) units.
        """
        key = (period or "7D").strip().upper()
        if key not in PRODUCED_PERIODS:
            raise InvalidInputError("Période invalide", allowed=list(PRODUCED_PERIODS))

        days = PRODUCED_PERIODS[key]
        since: datetime | None = utcnow() - timedelta(days=days) if days else None

        filters: list[Any] = [Order.production_validated_at.is_not(None)]
        if since is not None:
            filters.append(Order.production_validated_at >= since)

        orders_count = await self.session.scalar(select(func.count(Order.id)).where(*filters))

        produced = case(
            (OrderLine.quantity_ready >= OrderLine.quantity_shipped, OrderLine.quantity_ready),
            else_=OrderLine.quantity_shipped,
        )
        stmt = (
            select(Product.category, func.coalesce(func.sum(produced), 0))
            .select_from(OrderLine)
            .join(Order, Order.id == OrderLine.order_id)
            .join(Product, Product.id == OrderLine.product_id)
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

        return ProducedStats(
            period=key,
            since=since,
            orders_count=int(orders_count or 0),
            bigbag_total=bigbag,
            roche_total=roche,
        )

