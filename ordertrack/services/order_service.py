"""Order aggregate store.

Creation (direct and from a confirmed PDF preview), partial update with
line reconciliation, deletion and the office-side listings.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError

from ordertrack.config import settings
from ordertrack.core.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    UnprocessableError,
)
from ordertrack.core.quantities import (
    as_non_negative_int_fr_strict,
    clamp_limit,
    clamp_offset,
    normalize_label,
    parse_iso_date,
)
from ordertrack.core.statuses import (
    ExpeditionStatus,
    OrderState,
    Priority,
    ProductionStatus,
)
from ordertrack.infra.database import dialect_insert
from ordertrack.infra.logging import get_logger
from ordertrack.models import (
    Order,
    OrderComment,
    OrderCommentRead,
    OrderLine,
    Shipment,
    ShipmentLine,
    utcnow,
)
from ordertrack.schemas.common import Page
from ordertrack.schemas.order import (
    OrderCreate,
    OrderDetail,
    OrderLineInput,
    OrderLineView,
    OrderListItem,
)
from ordertrack.schemas.pdf_import import PreviewPayload
from ordertrack.schemas.shipment import ArchivedOrderDetail, ArchivedOrderItem, ShipmentRecap
from ordertrack.services.base import BaseStoreService, order_view, recompute_statuses
from ordertrack.services.catalog_service import CatalogService
from ordertrack.services.comment_service import CommentService, comment_counts

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"arc", "client_name", "order_date", "pickup_date", "priority"})

# How PostgreSQL and SQLite name the ARC column in a unique violation
ARC_UNIQUE_MARKERS = ("(arc)", "orders.arc")

# Status conditions behind each office-facing state
STATE_FILTERS = {
    OrderState.EN_PREPARATION: (
        Order.expedition_status == ExpeditionStatus.NON_EXPEDIEE.value,
        Order.production_status.in_(
            [ProductionStatus.A_PROD.value, ProductionStatus.PROD_PARTIELLE.value]
        ),
    ),
    OrderState.PRETE_A_EXPEDIER: (
        Order.expedition_status == ExpeditionStatus.NON_EXPEDIEE.value,
        Order.production_status == ProductionStatus.PROD_COMPLETE.value,
    ),
    OrderState.PARTIELLEMENT_EXPEDIEE: (
        Order.expedition_status == ExpeditionStatus.EXP_PARTIELLE.value,
    ),
    OrderState.EXPEDIEE: (Order.expedition_status == ExpeditionStatus.EXP_COMPLETE.value,),
}


@dataclass
class ImportedLine:
    label: str
    quantity: int


@dataclass
class ImportedOrder:
    """Preview after validation, ready to be written."""

    arc: str
    order_date: date
    client_name: str | None = None
    pickup_date: date | None = None
    priority: str = Priority.NORMAL.value
    products: list[ImportedLine] = field(default_factory=list)


@dataclass(frozen=True)
class ImportOutcome:
    """Result of a preview confirmation.

    Attributes:
        action: "created" or "skipped" (ARC already known)
        order_id: New order, or the existing one when skipped
        arc: Normalized ARC
        internal_comment_saved: Whether an import comment was stored
    """

    action: str
    order_id: int
    arc: str
    internal_comment_saved: bool = False

    @property
    def skipped(self) -> bool:
        return self.action == "skipped"


def check_priority(value: Any) -> str:
    priority = str(value or "").strip().upper()
    if priority not in {p.value for p in Priority}:
        raise InvalidInputError("Priorité invalide", allowed=[p.value for p in Priority])
    return priority


def _check_date(value: Any, name: str) -> date:
    parsed = parse_iso_date(value)
    if parsed is None:
        raise InvalidInputError(f"{name} invalide (YYYY-MM-DD attendu)")
    return parsed


def sanitize_preview(payload: PreviewPayload | Mapping[str, Any]) -> ImportedOrder:
    """Validate an import preview edited by the office.

    Quantities accept the French notation ("3", "3,00"); lines with a zero
    quantity are dropped and at least one line must remain.

    Raises:
        InvalidInputError: With the first problem found
    """
    src = payload.model_dump() if isinstance(payload, PreviewPayload) else dict(payload or {})

    arc = normalize_label(src.get("arc"))
    if not arc:
        raise InvalidInputError("ARC invalide")

    order_date = _check_date(src.get("order_date"), "order_date")
    client_name = normalize_label(src.get("client_name")) or None

    pickup_date = None
    if src.get("pickup_date") not in (None, ""):
        pickup_date = _check_date(src.get("pickup_date"), "pickup_date")

    priority = Priority.NORMAL.value
    if src.get("priority") not in (None, ""):
        priority = check_priority(src.get("priority"))

    products = src.get("products")
    if not isinstance(products, list):
        raise InvalidInputError("products doit être une liste")

    lines = []
    for item in products:
        item = item if isinstance(item, Mapping) else {}
        label = normalize_label(item.get("pdf_label"))
        if not label:
            raise InvalidInputError("pdf_label manquant sur une ligne")
        quantity = as_non_negative_int_fr_strict(item.get("quantity"))
        if quantity is None:
            raise InvalidInputError("Quantité invalide (entier >= 0 attendu : ex 3 ou 3,00)", label=label)
        if quantity > 0:
            lines.append(ImportedLine(label=label, quantity=quantity))

    if not lines:
        raise InvalidInputError("Au moins une ligne produit avec quantité > 0 est requise")

    return ImportedOrder(
        arc=arc,
        order_date=order_date,
        client_name=client_name,
        pickup_date=pickup_date,
        priority=priority,
        products=lines,
    )


class OrderService(BaseStoreService):
    """Orders and their lines."""

    # =========================================================================
    # Creation
    # =========================================================================

    async def find_by_arc(self, arc: str) -> Order | None:
        stmt = select(Order).where(Order.arc == normalize_label(arc))
        return (await self.session.execute(stmt)).scalar_one_or_none()

    async def create_order(
        self,
        data: OrderCreate,
        lines: Sequence[OrderLineInput],
        created_by: int | None = None,
    ) -> Order:
        """Insert an order and its lines.

        Lines start with nothing ready, loaded or shipped; products are
        taken from product_id or resolved from label.

        Raises:
            InvalidInputError: Bad header field, quantity or unknown product
            ConflictError: ARC already used
        """
        arc = normalize_label(data.arc)
        if not arc:
            raise InvalidInputError("ARC invalide")
        priority = check_priority(data.priority)
        for item in lines:
            self._check_quantity(item.quantity)

        if await self.find_by_arc(arc) is not None:
            raise ConflictError("ARC déjà utilisé", arc=arc)

        resolved = await self._resolve_line_products(lines)

        order = await self._insert_order(
            arc=arc,
            client_name=normalize_label(data.client_name) or None,
            order_date=data.order_date,
            pickup_date=data.pickup_date,
            priority=priority,
            created_by=created_by,
        )
        if order is None:
            raise ConflictError("ARC déjà utilisé", arc=arc)

        for item, (product_id, label) in zip(lines, resolved):
            self.session.add(
                OrderLine(
                    order_id=order.id,
                    product_id=product_id,
                    product_label_pdf=label,
                    quantity_ordered=self._check_quantity(item.quantity),
                    quantity_ready=0,
                    quantity_loaded=0,
                    quantity_shipped=0,
                )
            )
        await self.session.flush()

        logger.info("Order created", order_id=order.id, arc=arc, lines=len(lines))
        return order

    async def create_order_from_preview(
        self,
        preview: PreviewPayload | Mapping[str, Any],
        created_by: int | None = None,
        internal_comment: str | None = None,
    ) -> ImportOutcome:
        """Create an order from a confirmed import preview.

        A known ARC is not an error: nothing is written and the outcome is
        "skipped" with the existing order id.

        Raises:
            InvalidInputError: Invalid preview
            UnprocessableError: Labels missing from the catalog (all listed)
        """
        src = preview.model_dump() if isinstance(preview, PreviewPayload) else dict(preview or {})
        arc = normalize_label(src.get("arc"))
        if not arc:
            raise InvalidInputError("ARC manquant dans le preview")

        existing = await self.find_by_arc(arc)
        if existing is not None:
            logger.info("Import skipped, ARC already known", arc=arc, order_id=existing.id)
            return ImportOutcome(action="skipped", order_id=existing.id, arc=arc)

        imported = sanitize_preview(src)

        labels = await CatalogService(self.session).label_map(p.label for p in imported.products)
        missing = list(dict.fromkeys(p.label for p in imported.products if p.label not in labels))
        if missing:
            raise UnprocessableError(
                "Produits introuvables en base pour certains libellés PDF.",
                missing_labels=missing,
            )

        comment = (internal_comment or "").strip()
        if comment and created_by is None:
            raise InvalidInputError("Auteur manquant pour le commentaire interne")

        order = await self._insert_order(
            arc=imported.arc,
            client_name=imported.client_name,
            order_date=imported.order_date,
            pickup_date=imported.pickup_date,
            priority=imported.priority,
            created_by=created_by,
        )
        if order is None:
            # Confirmed concurrently by another request
            existing = await self.find_by_arc(imported.arc)
            logger.info("Import skipped, ARC created concurrently", arc=imported.arc, order_id=existing.id)
            return ImportOutcome(action="skipped", order_id=existing.id, arc=imported.arc)

        for item in imported.products:
            self.session.add(
                OrderLine(
                    order_id=order.id,
                    product_id=labels[item.label].id,
                    product_label_pdf=item.label,
                    quantity_ordered=item.quantity,
                    quantity_ready=0,
                    quantity_loaded=0,
                    quantity_shipped=0,
                )
            )
        await self.session.flush()

        if comment:
            await CommentService(self.session).post_comment(order.id, created_by, comment)

        logger.info(
            "Order imported",
            order_id=order.id,
            arc=imported.arc,
            lines=len(imported.products),
            internal_comment=bool(comment),
        )
        return ImportOutcome(
            action="created",
            order_id=order.id,
            arc=imported.arc,
            internal_comment_saved=bool(comment),
        )

    # =========================================================================
    # Update / delete
    # =========================================================================

    async def update_order(
        self,
        order_id: int,
        patch: Mapping[str, Any],
        lines: Sequence[OrderLineInput] | None = None,
        user_id: int | None = None,
    ) -> OrderDetail:
        """Partial update of an order, optionally replacing its lines.

        `lines`, when given, is the full desired state: absent lines are
        deleted, lines with an id updated, lines without id inserted.
        Everything happens with the order row and its lines locked.

        Raises:
            InvalidInputError: Nothing to update, bad field value
            NotFoundError: Unknown order or line id
            ConflictError: ARC taken, or a line change contradicting
                prepared/loaded/shipped quantities
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidInputError("Champs non modifiables", fields=sorted(unknown))
        if not patch and lines is None:
            raise InvalidInputError("Aucune modification fournie")

        order = await self.get_order(order_id, for_update=True)

        if "arc" in patch:
            arc = normalize_label(patch["arc"])
            if not arc:
                raise InvalidInputError("ARC invalide")
            if arc != order.arc:
                taken = await self.session.scalar(
                    select(Order.id).where(Order.arc == arc, Order.id != order.id)
                )
                if taken is not None:
                    raise ConflictError("ARC déjà utilisé", arc=arc, existing_order_id=taken)
            order.arc = arc

        if "client_name" in patch:
            order.client_name = normalize_label(patch["client_name"]) or None

        if "order_date" in patch:
            if patch["order_date"] in (None, ""):
                raise InvalidInputError("order_date ne peut pas être vidée")
            order.order_date = _check_date(patch["order_date"], "order_date")

        if "pickup_date" in patch:
            value = patch["pickup_date"]
            order.pickup_date = None if value in (None, "") else _check_date(value, "pickup_date")

        if "priority" in patch:
            order.priority = check_priority(patch["priority"])

        if lines is not None:
            await self._sync_lines(order, lines)

        await self._flush_arc(order.arc)

        logger.info(
            "Order updated",
            order_id=order.id,
            fields=sorted(patch),
            lines_synced=lines is not None,
        )
        return await self.get_order_detail(order.id, user_id=user_id)

    async def _sync_lines(self, order: Order, incoming: Sequence[OrderLineInput]) -> None:
        current = await self.get_lines(order.id, for_update=True)
        by_id = {line.id: line for line in current}

        kept_ids: set[int] = set()
        for item in incoming:
            self._check_quantity(item.quantity)
            if item.id is None:
                continue
            if item.id not in by_id:
                raise NotFoundError("Ligne inconnue pour cette commande", line_id=item.id)
            if item.id in kept_ids:
                raise InvalidInputError("Ligne en double", line_id=item.id)
            kept_ids.add(item.id)

        to_delete = [line for line in current if line.id not in kept_ids]
        for line in to_delete:
            if line.quantity_shipped > 0 or line.quantity_loaded > 0:
                raise ConflictError(
                    "Impossible de supprimer une ligne déjà expédiée (ou chargée camion)",
                    line_id=line.id,
                )

        resolved = await self._resolve_line_products(incoming, allow_keep=True)

        updates: list[tuple[OrderLine, OrderLineInput, int | None, str | None]] = []
        inserts: list[tuple[OrderLineInput, int, str | None]] = []
        for item, (product_id, label) in zip(incoming, resolved):
            if item.id is None:
                if product_id is None:
                    raise InvalidInputError("Produit requis pour une nouvelle ligne")
                inserts.append((item, product_id, label))
                continue

            line = by_id[item.id]
            floor = max(line.quantity_ready, line.quantity_shipped + line.quantity_loaded)
            if item.quantity < floor:
                raise ConflictError(
                    "Quantité commandée inférieure à la quantité préparée/chargée/expédiée",
                    line_id=line.id,
                    minimum=floor,
                )
            product_changed = product_id is not None and product_id != line.product_id
            if product_changed and (line.quantity_ready > 0 or line.quantity_shipped > 0):
                raise ConflictError(
                    "Impossible de remplacer un produit sur une ligne déjà en préparation/expédiée",
                    line_id=line.id,
                )
            updates.append((line, item, product_id if product_changed else None, label))

        for line in to_delete:
            await self.session.delete(line)

        for line, item, new_product_id, label in updates:
            line.quantity_ordered = item.quantity
            if new_product_id is not None:
                line.product_id = new_product_id
                line.product_label_pdf = label

        for item, product_id, label in inserts:
            self.session.add(
                OrderLine(
                    order_id=order.id,
                    product_id=product_id,
                    product_label_pdf=label,
                    quantity_ordered=item.quantity,
                    quantity_ready=0,
                    quantity_loaded=0,
                    quantity_shipped=0,
                )
            )

        await self.session.flush()

        order.production_validated_at = None
        recompute_statuses(order, await self.get_lines(order.id))

        logger.debug(
            "Order lines synced",
            order_id=order.id,
            deleted=len(to_delete),
            updated=len(updates),
            inserted=len(inserts),
        )

    async def _resolve_line_products(
        self,
        lines: Sequence[OrderLineInput],
        allow_keep: bool = False,
    ) -> list[tuple[int | None, str | None]]:
        """Product id and frozen label for each input line.

        A line carrying neither product_id nor label resolves to None when
        allow_keep is set (existing line keeps its product).
        """
        catalog = CatalogService(self.session)
        labels = await catalog.label_map(line.label for line in lines if line.product_id is None and line.label)
        products = await self.product_map(line.product_id for line in lines if line.product_id is not None)

        resolved: list[tuple[int | None, str | None]] = []
        missing: list[str] = []
        for line in lines:
            if line.product_id is not None:
                product = products.get(line.product_id)
                if product is None:
                    raise InvalidInputError("Produit inconnu", product_id=line.product_id)
                resolved.append((product.id, normalize_label(line.label) or None))
            elif line.label:
                label = normalize_label(line.label)
                product = labels.get(label)
                if product is None:
                    missing.append(label)
                    resolved.append((None, label))
                else:
                    resolved.append((product.id, label))
            elif allow_keep and line.id is not None:
                resolved.append((None, None))
            else:
                raise InvalidInputError("Produit requis (product_id ou label)")

        if missing:
            raise InvalidInputError(
                "Produits introuvables en base pour certains libellés",
                missing_labels=list(dict.fromkeys(missing)),
            )
        return resolved

    async def delete_order(self, order_id: int) -> None:
        """Delete an order with its lines, shipments and comment thread."""
        order = await self.get_order(order_id, for_update=True)

        shipment_ids = select(Shipment.id).where(Shipment.order_id == order.id)
        statements = [
            delete(ShipmentLine).where(ShipmentLine.shipment_id.in_(shipment_ids)),
            delete(Shipment).where(Shipment.order_id == order.id),
            delete(OrderCommentRead).where(OrderCommentRead.order_id == order.id),
            delete(OrderComment).where(OrderComment.order_id == order.id),
            delete(OrderLine).where(OrderLine.order_id == order.id),
            delete(Order).where(Order.id == order.id),
        ]
        for stmt in statements:
            await self.session.execute(stmt.execution_options(synchronize_session=False))

        self.session.expunge(order)
        logger.info("Order deleted", order_id=order_id, arc=order.arc)

    # =========================================================================
    # Reads
    # =========================================================================

    async def get_order_detail(self, order_id: int, user_id: int | None = None) -> OrderDetail:
        """Order with its lines and the caller's comment counters."""
        return await self.order_detail(await self.get_order(order_id), user_id)

    async def get_order_lines(self, order_id: int) -> list[OrderLineView]:
        await self.get_order(order_id)
        return await self.line_views(order_id)

    async def list_active_orders(
        self,
        q: str | None = None,
        priority: str | None = None,
        state: str | None = None,
        limit: Any = None,
        offset: Any = 0,
        user_id: int | None = None,
    ) -> Page[OrderListItem]:
        """Non-archived orders, newest first, with state and comment counters."""
        lim = clamp_limit(limit, default=settings.page_limit_default, maximum=settings.page_limit_max)
        off = clamp_offset(offset)

        filters: list[Any] = [Order.is_archived.is_(False)]
        term = (q or "").strip()
        if term:
            like = f"%{term}%"
            filters.append(or_(Order.arc.ilike(like), Order.client_name.ilike(like)))
        if priority:
            filters.append(Order.priority == check_priority(priority))
        if state:
            try:
                wanted = OrderState(state.strip().upper())
            except ValueError as e:
                raise InvalidInputError("État invalide", allowed=[s.value for s in STATE_FILTERS]) from e
            if wanted not in STATE_FILTERS:
                raise InvalidInputError("État invalide", allowed=[s.value for s in STATE_FILTERS])
            filters.extend(STATE_FILTERS[wanted])

        total = await self.session.scalar(select(func.count(Order.id)).where(*filters))
        stmt = (
            select(Order)
            .where(*filters)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .limit(lim)
            .offset(off)
        )
        orders = list((await self.session.execute(stmt)).scalars().all())
        counts = await comment_counts(self.session, [o.id for o in orders], user_id)

        items = [
            OrderListItem(**order_view(o).model_dump(), **counts[o.id].model_dump())
            for o in orders
        ]
        return Page[OrderListItem](items=items, total=int(total or 0), limit=lim, offset=off)

    # =========================================================================
    # History
    # =========================================================================

    async def list_archived_orders(
        self,
        q: str | None = None,
        days: int | None = None,
        limit: Any = None,
        offset: Any = 0,
    ) -> Page[ArchivedOrderItem]:
        """Archived orders, most recently departed first.

        With `days`, only orders whose last departure is within that window.
        """
        lim = clamp_limit(limit, default=settings.page_limit_default, maximum=settings.page_limit_max)
        off = clamp_offset(offset)

        departures = (
            select(
                Shipment.order_id.label("order_id"),
                func.max(Shipment.departed_at).label("last_departed_at"),
                func.count(Shipment.id).label("shipments_count"),
            )
            .group_by(Shipment.order_id)
            .subquery()
        )

        filters: list[Any] = [Order.is_archived.is_(True)]
        term = (q or "").strip()
        if term:
            like = f"%{term}%"
            filters.append(or_(Order.arc.ilike(like), Order.client_name.ilike(like)))
        if days:
            if days < 1:
                raise InvalidInputError("days doit être positif")
            since = utcnow() - timedelta(days=days)
            filters.append(departures.c.last_departed_at.is_not(None))
            filters.append(departures.c.last_departed_at >= since)

        base = select(Order.id).outerjoin(departures, departures.c.order_id == Order.id).where(*filters)
        total = await self.session.scalar(select(func.count()).select_from(base.subquery()))

        stmt = (
            select(Order, departures.c.last_departed_at, departures.c.shipments_count)
            .outerjoin(departures, departures.c.order_id == Order.id)
            .where(*filters)
            .order_by(
                departures.c.last_departed_at.is_(None).asc(),
                departures.c.last_departed_at.desc(),
                Order.order_date.desc(),
                Order.id.desc(),
            )
            .limit(lim)
            .offset(off)
        )
        items = [
            ArchivedOrderItem(
                **order_view(order).model_dump(),
                last_departed_at=last_departed_at,
                shipments_count=int(shipments_count or 0),
            )
            for order, last_departed_at, shipments_count in (await self.session.execute(stmt)).all()
        ]
        return Page[ArchivedOrderItem](items=items, total=int(total or 0), limit=lim, offset=off)

    async def get_order_history(self, order_id: int) -> ArchivedOrderDetail:
        """Full history of an order: lines, every departure and totals."""
        order = await self.get_order(order_id)
        lines = await self.line_views(order.id)
        shipments = await self.shipment_views(await self.order_shipments(order.id))

        return ArchivedOrderDetail(
            order=order_view(order),
            lines=lines,
            shipments=shipments,
            recap=ShipmentRecap(
                shipped_total=sum(line.quantity_shipped for line in lines),
                ordered_total=sum(line.quantity_ordered for line in lines),
            ),
            last_departed_at=shipments[0].departed_at if shipments else None,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _check_quantity(value: Any) -> int:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise InvalidInputError("Quantité invalide (entier >= 0 attendu)")
        return value

    async def _insert_order(self, **values: Any) -> Order | None:
        """Insert a fresh order header unless its ARC is already taken.

        Returns:
            The new order, or None when another order holds the ARC
        """
        stmt = (
            dialect_insert(self.session, Order)
            .values(
                production_status=ProductionStatus.A_PROD.value,
                expedition_status=ExpeditionStatus.NON_EXPEDIEE.value,
                is_archived=False,
                **values,
            )
            .on_conflict_do_nothing(index_elements=[Order.arc])
            .returning(Order.id)
        )
        order_id = (await self.session.execute(stmt)).scalar_one_or_none()
        if order_id is None:
            return None
        return await self.session.get(Order, order_id)

    async def _flush_arc(self, arc: str) -> None:
        """Flush, turning a violation of the ARC unique key into a conflict."""
        try:
            await self.session.flush()
        except IntegrityError as e:
            message = str(e.orig)
            if not any(marker in message for marker in ARC_UNIQUE_MARKERS):
                raise
            raise ConflictError("ARC déjà utilisé", arc=arc) from e
