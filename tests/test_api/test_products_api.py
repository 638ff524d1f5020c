"""Tests for catalog routes."""

import pytest
from httpx import AsyncClient


class TestProductRoutes:
    """Tests for /products."""

    @pytest.mark.asyncio
    async def test_list_products(self, client: AsyncClient, catalog):
        response = await client.get("/products", params={"category": "AUTRE"})

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert [p["pdf_label_exact"] for p in data["items"]] == ["ANCIEN PRODUIT", "SABLE 0/4"]

    @pytest.mark.asyncio
    async def test_search(self, client: AsyncClient, catalog):
        """Autocompletion matches part of the label."""
        response = await client.get("/products/search", params={"q": "31.5"})

        assert response.status_code == 200
        assert [p["id"] for p in response.json()] == [catalog["bigbag"]]

    @pytest.mark.asyncio
    async def test_create_and_duplicate(self, client: AsyncClient, catalog):
        """A label can be created once."""
        body = {"pdf_label_exact": "GRAVIER 6/10", "category": "ROCHE", "weight_per_unit_kg": 30}

        response = await client.post("/products", json=body)
        assert response.status_code == 201
        assert response.json()["pdf_label_exact"] == "GRAVIER 6/10"

        response = await client.post("/products", json=body)
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_create_invalid(self, client: AsyncClient, catalog):
        """Invalid fields are a 400."""
        response = await client.post(
            "/products",
            json={"pdf_label_exact": "X", "category": "BETON", "weight_per_unit_kg": 1},
        )
        assert response.status_code == 400

        response = await client.post("/products", json={"pdf_label_exact": "X"})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update(self, client: AsyncClient, catalog):
        response = await client.patch(f"/products/{catalog['sable']}", json={"weight_per_unit_kg": 40})

        assert response.status_code == 200
        assert response.json()["weight_per_unit_kg"] == 40

    @pytest.mark.asyncio
    async def test_delete(self, client: AsyncClient, catalog, make_order):
        """Used products are protected; unused ones are removed."""
        await make_order(lines=[("bigbag", 1)])

        response = await client.delete(f"/products/{catalog['bigbag']}")
        assert response.status_code == 409
        assert response.json()["detail"]["usage"]["order_products"] == 1

        response = await client.delete(f"/products/{catalog['old']}")
        assert response.status_code == 204
