"""Product catalog - label resolution for imports and catalog administration."""

from collections.abc import Iterable
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ordertrack.config import settings
from ordertrack.core.errors import ConflictError, InvalidInputError, NotFoundError
from ordertrack.core.quantities import clamp_limit, clamp_offset, normalize_label
from ordertrack.core.statuses import ProductCategory
from ordertrack.infra.logging import get_logger
from ordertrack.models import OrderLine, Product, ShipmentLine
from ordertrack.schemas.common import Page
from ordertrack.schemas.product import ProductCreate, ProductUpdate, ProductView

logger = get_logger(__name__)

VALID_CATEGORIES = frozenset(c.value for c in ProductCategory)
SEARCH_LIMIT_MAX = 20


def _usage_columns():
    order_lines = (
        select(func.count(OrderLine.id))
        .where(OrderLine.product_id == Product.id)
        .correlate(Product)
        .scalar_subquery()
    )
    shipment_lines = (
        select(func.count(ShipmentLine.id))
        .where(ShipmentLine.product_id == Product.id)
        .correlate(Product)
        .scalar_subquery()
    )
    return order_lines, shipment_lines


class CatalogService:
    """Resolver and administration of `products_catalog`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # Resolution
    # =========================================================================

    async def resolve_labels(self, labels: Iterable[Any]) -> list[Product]:
        """Active products whose label matches one of `labels` exactly.

        Labels are normalized and deduplicated; empty ones are ignored.
        """
        unique = list(dict.fromkeys(filter(None, (normalize_label(label) for label in labels))))
        if not unique:
            return []

        stmt = select(Product).where(
            Product.pdf_label_exact.in_(unique),
            Product.is_active.is_(True),
        )
        return list((await self.session.execute(stmt)).scalars().all())

    async def label_map(self, labels: Iterable[Any]) -> dict[str, Product]:
        """Same as resolve_labels, keyed by normalized catalog label."""
        products = await self.resolve_labels(labels)
        return {normalize_label(p.pdf_label_exact): p for p in products}

    # =========================================================================
    # Administration
    # =========================================================================

    async def search_products(self, q: str | None, limit: Any = 10) -> list[Product]:
        """Label autocompletion, alphabetical."""
        lim = clamp_limit(limit, default=10, maximum=SEARCH_LIMIT_MAX)
        term = (q or "").strip()

        stmt = select(Product).order_by(Product.pdf_label_exact.asc()).limit(lim)
        if term:
            stmt = stmt.where(Product.pdf_label_exact.ilike(f"%{term}%"))
        return list((await self.session.execute(stmt)).scalars().all())

    async def list_products(
        self,
        q: str | None = None,
        category: str | None = None,
        active: bool | None = None,
        limit: Any = None,
        offset: Any = 0,
    ) -> Page[ProductView]:
        """Paginated catalog with usage counts."""
        lim = clamp_limit(limit, default=settings.page_limit_default, maximum=settings.page_limit_max)
        off = clamp_offset(offset)

        filters = []
        term = (q or "").strip()
        if term:
            filters.append(Product.pdf_label_exact.ilike(f"%{term}%"))
        if category:
            filters.append(Product.category == category.strip().upper())
        if active is not None:
            filters.append(Product.is_active.is_(active))

        total = await self.session.scalar(select(func.count(Product.id)).where(*filters))

        order_lines, shipment_lines = _usage_columns()
        stmt = (
            select(Product, order_lines, shipment_lines)
            .where(*filters)
            .order_by(Product.pdf_label_exact.asc())
            .limit(lim)
            .offset(off)
        )
        items = []
        for product, op_count, sl_count in (await self.session.execute(stmt)).all():
            view = ProductView.model_validate(product)
            view.usage_count = int(op_count or 0) + int(sl_count or 0)
            items.append(view)

        return Page[ProductView](items=items, total=int(total or 0), limit=lim, offset=off)

    async def get_product(self, product_id: int) -> Product:
        product = await self.session.get(Product, product_id)
        if product is None:
            raise NotFoundError("Produit introuvable", product_id=product_id)
        return product

    async def create_product(self, data: ProductCreate) -> ProductView:
        """Add a catalog entry.

        Raises:
            InvalidInputError: Empty label, unknown category, weight <= 0
            ConflictError: Label already used
        """
        label = normalize_label(data.pdf_label_exact)
        category = self._check_category(data.category)
        weight = self._check_weight(data.weight_per_unit_kg)
        if not label:
            raise InvalidInputError("Libellé PDF requis")

        await self._check_label_free(label)

        product = Product(
            pdf_label_exact=label,
            category=category,
            weight_per_unit_kg=weight,
            is_active=data.is_active,
        )
        self.session.add(product)
        await self._flush_unique(label)

        logger.info("Product created", product_id=product.id, label=label, category=category)
        return ProductView.model_validate(product)

    async def update_product(self, product_id: int, data: ProductUpdate) -> ProductView:
        """Partial update of a catalog entry."""
        patch = data.model_dump(exclude_unset=True)
        if not patch:
            raise InvalidInputError("Aucun champ à mettre à jour")

        product = await self.get_product(product_id)

        if "pdf_label_exact" in patch:
            label = normalize_label(patch["pdf_label_exact"])
            if not label:
                raise InvalidInputError("Libellé PDF requis")
            if label != product.pdf_label_exact:
                await self._check_label_free(label, exclude_id=product.id)
            product.pdf_label_exact = label
        if "category" in patch:
            product.category = self._check_category(patch["category"])
        if "weight_per_unit_kg" in patch:
            product.weight_per_unit_kg = self._check_weight(patch["weight_per_unit_kg"])
        if "is_active" in patch:
            if patch["is_active"] is None:
                raise InvalidInputError("is_active invalide")
            product.is_active = bool(patch["is_active"])

        await self._flush_unique(product.pdf_label_exact)

        logger.info("Product updated", product_id=product.id, fields=sorted(patch))
        return ProductView.model_validate(product)

    async def usage(self, product_id: int) -> dict[str, int]:
        order_lines = await self.session.scalar(
            select(func.count(OrderLine.id)).where(OrderLine.product_id == product_id)
        )
        shipment_lines = await self.session.scalar(
            select(func.count(ShipmentLine.id)).where(ShipmentLine.product_id == product_id)
        )
        return {"order_products": int(order_lines or 0), "shipment_lines": int(shipment_lines or 0)}

    async def delete_product(self, product_id: int) -> None:
        """Hard delete an unused product.

        Raises:
            NotFoundError: Unknown product
            ConflictError: Product referenced by order or shipment lines
        """
        product = await self.get_product(product_id)
        usage = await self.usage(product_id)
        if usage["order_products"] + usage["shipment_lines"] > 0:
            raise ConflictError(
                "Produit utilisé par des commandes : désactivez-le plutôt",
                product_id=product_id,
                usage=usage,
            )

        await self.session.delete(product)
        await self.session.flush()
        logger.info("Product deleted", product_id=product_id)

    # =========================================================================
    # Validation helpers
    # =========================================================================

    @staticmethod
    def _check_category(value: Any) -> str:
        category = str(value or "").strip().upper()
        if category not in VALID_CATEGORIES:
            raise InvalidInputError(
                "Catégorie invalide",
                allowed=sorted(VALID_CATEGORIES),
            )
        return category

    @staticmethod
    def _check_weight(value: Any) -> float:
        try:
            weight = float(value)
        except (TypeError, ValueError) as e:
            raise InvalidInputError("Poids unitaire invalide") from e
        if not weight > 0:
            raise InvalidInputError("Poids unitaire invalide (> 0 attendu)")
        return weight

    async def _check_label_free(self, label: str, exclude_id: int | None = None) -> None:
        stmt = select(Product.id).where(Product.pdf_label_exact == label)
        if exclude_id is not None:
            stmt = stmt.where(Product.id != exclude_id)
        if await self.session.scalar(stmt) is not None:
            raise ConflictError("Libellé PDF déjà utilisé", label=label)

    async def _flush_unique(self, label: str) -> None:
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError("Libellé PDF déjà utilisé", label=label) from e
