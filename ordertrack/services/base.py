"""Shared plumbing for the order stores.

Row loading with `SELECT ... FOR UPDATE`, status recomputation and the
conversion of rows into read models. Sessions run with autoflush off, so
callers flush before reading back what they wrote.
"""

from collections.abc import Iterable, Sequence

from sqlalchemy import case, select
from sqlalchemy.ext.asyncio import AsyncSession

from ordertrack.core.errors import NotFoundError
from ordertrack.core.statuses import (
    BIGBAG_CATEGORIES,
    ORDER_STATE_LABELS,
    PRIORITY_RANK,
    ProductCategory,
    derive_expedition_status,
    derive_order_state,
    derive_production_status,
)
from ordertrack.models import Order, OrderLine, Product, Shipment
from ordertrack.schemas.order import OrderDetail, OrderLineView, OrderView
from ordertrack.schemas.shipment import ShipmentLineView, ShipmentView
from ordertrack.services.comment_service import CommentService

LineWithProduct = tuple[OrderLine, Product]


def order_view(order: Order) -> OrderView:
    """Build the read model of an order, derived state included."""
    state = derive_order_state(order.production_status, order.expedition_status)
    view = OrderView.model_validate(order)
    view.state = state
    view.state_label = ORDER_STATE_LABELS[state]
    return view


def line_view(line: OrderLine, product: Product | None) -> OrderLineView:
    catalog_label = product.pdf_label_exact if product is not None else None
    return OrderLineView(
        id=line.id,
        product_id=line.product_id,
        label=line.product_label_pdf or catalog_label or "",
        pdf_label=line.product_label_pdf,
        catalog_label=catalog_label,
        category=product.category if product is not None else None,
        weight_per_unit_kg=product.weight_per_unit_kg if product is not None else None,
        quantity_ordered=line.quantity_ordered,
        quantity_ready=line.quantity_ready,
        quantity_loaded=line.quantity_loaded,
        quantity_shipped=line.quantity_shipped,
        remaining=max(0, line.quantity_ordered - line.quantity_shipped),
    )


def recompute_statuses(order: Order, lines: Sequence[OrderLine]) -> None:
    """Rewrite both cached status columns from the current lines."""
    order.production_status = derive_production_status(lines).value
    order.expedition_status = derive_expedition_status(lines).value


def category_totals(
    rows: Iterable[LineWithProduct],
    quantity_attr: str = "quantity_ordered",
) -> tuple[int, int]:
    """Sum a line quantity per family.

    Returns:
        (bigbag_total, roche_total); SmallBag counts as BigBag
    """
    bigbag = 0
    roche = 0
    for line, product in rows:
        qty = getattr(line, quantity_attr) or 0
        if product.category in BIGBAG_CATEGORIES:
            bigbag += qty
        elif product.category == ProductCategory.ROCHE.value:
            roche += qty
    return bigbag, roche


def priority_ordering() -> list:
    """URGENT first, then earliest pickup (unset last), then newest."""
    rank = case(PRIORITY_RANK, value=Order.priority, else_=len(PRIORITY_RANK) + 1)
    return [
        rank.asc(),
        Order.pickup_date.is_(None).asc(),
        Order.pickup_date.asc(),
        Order.created_at.desc(),
        Order.id.desc(),
    ]


class BaseStoreService:
    """Base class for services working on the order aggregate."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the service.

        Args:
            session: Session of the current unit of work
        """
        self.session = session

    async def get_order(self, order_id: int, *, for_update: bool = False) -> Order:
        """Load an order or raise NotFoundError.

        With for_update the row is locked until the transaction ends and
        the in-memory object is refreshed from the database.
        """
        stmt = select(Order).where(Order.id == order_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        order = (await self.session.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFoundError("Commande introuvable", order_id=order_id)
        return order

    async def get_lines(self, order_id: int, *, for_update: bool = False) -> list[OrderLine]:
        stmt = select(OrderLine).where(OrderLine.order_id == order_id).order_by(OrderLine.id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return list((await self.session.execute(stmt)).scalars().all())

    async def lines_with_products(self, order_ids: Sequence[int]) -> dict[int, list[LineWithProduct]]:
        """Lines of several orders joined to their catalog product, by order id."""
        grouped: dict[int, list[LineWithProduct]] = {oid: [] for oid in order_ids}
        if not order_ids:
            return grouped

        stmt = (
            select(OrderLine, Product)
            .join(Product, Product.id == OrderLine.product_id)
            .where(OrderLine.order_id.in_(list(order_ids)))
            .order_by(OrderLine.order_id, OrderLine.id)
        )
        for line, product in (await self.session.execute(stmt)).all():
            grouped.setdefault(line.order_id, []).append((line, product))
        return grouped

    async def line_views(self, order_id: int) -> list[OrderLineView]:
        rows = (await self.lines_with_products([order_id]))[order_id]
        return [line_view(line, product) for line, product in rows]

    async def product_map(self, product_ids: Iterable[int]) -> dict[int, Product]:
        ids = {pid for pid in product_ids if pid is not None}
        if not ids:
            return {}
        result = await self.session.execute(select(Product).where(Product.id.in_(ids)))
        return {p.id: p for p in result.scalars().all()}

    async def shipment_views(self, shipments: Sequence[Shipment]) -> list[ShipmentView]:
        """Render shipments with display labels (frozen label, or catalog label)."""
        products = await self.product_map(
            line.product_id for shipment in shipments for line in shipment.lines
        )
        views = []
        for shipment in shipments:
            lines = []
            for line in shipment.lines:
                product = products.get(line.product_id)
                lines.append(
                    ShipmentLineView(
                        id=line.id,
                        product_id=line.product_id,
                        label=line.product_label_pdf
                        or (product.pdf_label_exact if product is not None else ""),
                        category=product.category if product is not None else None,
                        quantity_loaded=line.quantity_loaded,
                    )
                )
            views.append(
                ShipmentView(
                    id=shipment.id,
                    order_id=shipment.order_id,
                    departed_at=shipment.departed_at,
                    bureau_ack_at=shipment.bureau_ack_at,
                    bureau_ack_by=shipment.bureau_ack_by,
                    created_by=shipment.created_by,
                    lines=lines,
                )
            )
        return views

    async def order_shipments(self, order_id: int) -> list[Shipment]:
        """All departures of an order, newest first."""
        stmt = (
            select(Shipment)
            .where(Shipment.order_id == order_id)
            .order_by(Shipment.departed_at.desc(), Shipment.id.desc())
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def order_detail(self, order: Order, user_id: int | None = None) -> OrderDetail:
        """Order with its lines and the caller's comment counters."""
        counts = await CommentService(self.session).get_counts(order.id, user_id)
        return OrderDetail(order=order_view(order), lines=await self.line_views(order.id), counters=counts)
