"""Tests for the PDF import routes."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from ordertrack.api.deps import get_db
from ordertrack.infra.pdf_text import ExtractedPdf
from ordertrack.main import app
from ordertrack.models import Order

ORDER_TEXT = "\n".join(
    [
        "ACCUSE DE RECEPTION DE COMMANDE n° 445566",
        "COMMANDE DU 12/04/2024",
        "SARL DUPONT",
        "69003 LYON",
        "2,00 100,00 200,00",
        "BIG BAG 0/31.5",
        "Réf. 0042",
    ]
)


@pytest.fixture(autouse=True)
def fake_extract(monkeypatch):
    def _extract(data: bytes) -> ExtractedPdf:
        return ExtractedPdf(text=ORDER_TEXT, page_count=1)

    monkeypatch.setattr("ordertrack.services.pdf_import_service.extract_pdf_text", _extract)


def _upload(content: bytes = b"%PDF-1.4 test") -> dict:
    return {"file": ("arc.pdf", content, "application/pdf")}


class TestPdfImportRoutes:
    """Tests for /pdf."""

    @pytest.mark.asyncio
    async def test_preview_then_confirm(self, client: AsyncClient, catalog, users):
        """Preview, then confirm creates the order; a second import is a 409."""
        headers = {"X-User-Id": str(users["office"])}

        response = await client.post("/pdf/preview", files=_upload(), headers=headers)
        assert response.status_code == 200
        preview = response.json()
        assert preview["preview"]["arc"] == "445566"

        response = await client.post(
            f"/pdf/{preview['import_id']}/confirm",
            json={"preview": preview["preview"], "internal_comment": "À livrer lundi"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["action"] == "created"
        assert response.json()["internal_comment_saved"] is True
        order_id = response.json()["order_id"]

        again = (await client.post("/pdf/preview", files=_upload())).json()
        assert again["dedupe"]["match"] is True

        response = await client.post(
            f"/pdf/{again['import_id']}/confirm", json={"preview": again["preview"]}
        )
        assert response.status_code == 409
        assert response.json()["action"] == "skipped"
        assert response.json()["order_id"] == order_id

    @pytest.mark.asyncio
    async def test_not_a_pdf(self, client: AsyncClient, catalog):
        response = await client.post("/pdf/preview", files=_upload(b"plain text"))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_discard(self, client: AsyncClient, catalog):
        """A discarded preview can no longer be confirmed."""
        preview = (await client.post("/pdf/preview", files=_upload())).json()

        response = await client.delete(f"/pdf/{preview['import_id']}")
        assert response.status_code == 204

        response = await client.post(
            f"/pdf/{preview['import_id']}/confirm", json={"preview": preview["preview"]}
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_confirm_committed_by_route(self, client: AsyncClient, session, catalog):
        """The confirmed order is durable before the response is sent."""

        async def discarding_get_db():
            yield session
            await session.rollback()

        app.dependency_overrides[get_db] = discarding_get_db
        preview = (await client.post("/pdf/preview", files=_upload())).json()

        response = await client.post(
            f"/pdf/{preview['import_id']}/confirm", json={"preview": preview["preview"]}
        )

        assert response.status_code == 200
        assert await session.scalar(select(func.count(Order.id)).where(Order.arc == "445566")) == 1
