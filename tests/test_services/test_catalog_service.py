"""Tests for the product catalog service."""

import pytest

from ordertrack.core.errors import ConflictError, InvalidInputError, NotFoundError
from ordertrack.schemas.product import ProductCreate, ProductUpdate
from ordertrack.services.catalog_service import CatalogService


class TestLabelResolution:
    """Tests for label lookups used by imports."""

    @pytest.mark.asyncio
    async def test_resolve_normalizes_and_skips_inactive(self, session, catalog):
        """Labels are matched after normalization, on active products only."""
        service = CatalogService(session)

        found = await service.resolve_labels(
            ["  BIG BAG   0/31.5 ", "ANCIEN PRODUIT", "INCONNU", "", None]
        )

        assert [p.id for p in found] == [catalog["bigbag"]]

    @pytest.mark.asyncio
    async def test_label_map(self, session, catalog):
        """The map is keyed by normalized catalog label."""
        labels = await CatalogService(session).label_map(["SABLE 0/4", "SABLE 0/4"])

        assert list(labels) == ["SABLE 0/4"]
        assert labels["SABLE 0/4"].id == catalog["sable"]

    @pytest.mark.asyncio
    async def test_resolve_nothing(self, session, catalog):
        """No usable label means no query result."""
        assert await CatalogService(session).resolve_labels([]) == []


class TestCatalogAdministration:
    """Tests for catalog CRUD."""

    @pytest.mark.asyncio
    async def test_search(self, session, catalog):
        """Search is case-insensitive on the label."""
        found = await CatalogService(session).search_products("roche")

        assert [p.pdf_label_exact for p in found] == ["ROCHE CONCASSEE 20/40"]

    @pytest.mark.asyncio
    async def test_search_limit_is_capped(self, session, catalog):
        """Requested limits above the cap still return at most the cap."""
        found = await CatalogService(session).search_products(None, limit=500)

        assert len(found) == 4
        assert [p.pdf_label_exact for p in found] == sorted(p.pdf_label_exact for p in found)

    @pytest.mark.asyncio
    async def test_create_product(self, session, catalog):
        """A new product is stored with a normalized label."""
        view = await CatalogService(session).create_product(
            ProductCreate(pdf_label_exact="  GRAVIER  6/10 ", category="roche", weight_per_unit_kg=30)
        )

        assert view.pdf_label_exact == "GRAVIER 6/10"
        assert view.category == "ROCHE"
        assert view.is_active is True

    @pytest.mark.asyncio
    async def test_create_duplicate_label(self, session, catalog):
        """Two products cannot share a label."""
        with pytest.raises(ConflictError):
            await CatalogService(session).create_product(
                ProductCreate(pdf_label_exact="SABLE 0/4", category="AUTRE", weight_per_unit_kg=1)
            )

    @pytest.mark.asyncio
    async def test_create_invalid_fields(self, session, catalog):
        """Unknown categories and non-positive weights are refused."""
        service = CatalogService(session)
        with pytest.raises(InvalidInputError):
            await service.create_product(
                ProductCreate(pdf_label_exact="X", category="BETON", weight_per_unit_kg=1)
            )
        with pytest.raises(InvalidInputError):
            await service.create_product(
                ProductCreate(pdf_label_exact="X", category="AUTRE", weight_per_unit_kg=0)
            )

    @pytest.mark.asyncio
    async def test_update_product(self, session, catalog):
        """Only the given fields change."""
        view = await CatalogService(session).update_product(
            catalog["sable"], ProductUpdate(is_active=False)
        )

        assert view.is_active is False
        assert view.pdf_label_exact == "SABLE 0/4"

    @pytest.mark.asyncio
    async def test_update_requires_a_field(self, session, catalog):
        """An empty patch is refused."""
        with pytest.raises(InvalidInputError):
            await CatalogService(session).update_product(catalog["sable"], ProductUpdate())

    @pytest.mark.asyncio
    async def test_list_with_usage(self, session, catalog, make_order):
        """Listings report how many lines use each product."""
        await make_order(lines=[("bigbag", 10)])

        page = await CatalogService(session).list_products(q="big")

        assert page.total == 1
        assert page.items[0].usage_count == 1

    @pytest.mark.asyncio
    async def test_list_inactive_only(self, session, catalog):
        """The active filter restricts the listing."""
        page = await CatalogService(session).list_products(active=False)

        assert [p.pdf_label_exact for p in page.items] == ["ANCIEN PRODUIT"]

    @pytest.mark.asyncio
    async def test_delete_used_product(self, session, catalog, make_order):
        """A product referenced by an order cannot be deleted."""
        await make_order(lines=[("roche", 5)])

        with pytest.raises(ConflictError) as exc_info:
            await CatalogService(session).delete_product(catalog["roche"])

        assert exc_info.value.detail["usage"]["order_products"] == 1

    @pytest.mark.asyncio
    async def test_delete_unused_product(self, session, catalog):
        """An unused product is removed."""
        service = CatalogService(session)
        await service.delete_product(catalog["old"])

        with pytest.raises(NotFoundError):
            await service.get_product(catalog["old"])
