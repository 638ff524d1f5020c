"""Tests for the two-step PDF import."""

import pytest

from ordertrack.config import settings
from ordertrack.core.errors import (
    InvalidInputError,
    NotFoundError,
    PayloadTooLargeError,
    UnprocessableError,
)
from ordertrack.infra.pdf_text import ExtractedPdf, PdfReadError
from ordertrack.schemas.pdf_import import ConfirmRequest, PreviewPayload
from ordertrack.services.pdf_import_service import PdfImportService

PDF_BYTES = b"%PDF-1.4 test document"

ORDER_TEXT = "\n".join(
    [
        "ACCUSE DE RECEPTION DE COMMANDE n° 445566",
        "COMMANDE DU 12/04/2024",
        "SARL DUPONT",
        "69003 LYON",
        "2,00 100,00 200,00",
        "BIG BAG 0/31.5",
        "Réf. 0042",
        "8,00 10,00 80,00",
        "ROCHE CONCASSEE 20/40",
        "Réf. 0043",
    ]
)


@pytest.fixture
def fake_extract(monkeypatch):
    """Replace PDF extraction with a fixed text."""

    def _install(text: str = ORDER_TEXT, error: Exception | None = None) -> None:
        def _extract(data: bytes) -> ExtractedPdf:
            if error is not None:
                raise error
            return ExtractedPdf(text=text, page_count=1)

        monkeypatch.setattr("ordertrack.services.pdf_import_service.extract_pdf_text", _extract)

    return _install


class TestPreview:
    """Tests for PdfImportService.preview."""

    @pytest.mark.asyncio
    async def test_preview(self, session, catalog, preview_store, fake_extract):
        """A recognized PDF is parsed and kept for confirmation."""
        fake_extract()

        response = await PdfImportService(session, preview_store).preview(PDF_BYTES, filename="arc.pdf")

        assert response.status == "preview"
        assert response.preview["arc"] == "445566"
        assert response.preview["order_date"] == "2024-04-12"
        assert response.preview["client_name"] == "SARL DUPONT"
        assert len(response.preview["products"]) == 2
        assert response.meta["filename"] == "arc.pdf"
        assert response.meta["pages"] == 1
        assert response.dedupe.match is False
        assert await preview_store.get(response.import_id) is not None

    @pytest.mark.asyncio
    async def test_empty_store_is_used(self, session, preview_store):
        """A store passed in is kept even while it holds nothing."""
        assert len(preview_store) == 0

        assert PdfImportService(session, preview_store).store is preview_store

    @pytest.mark.asyncio
    async def test_rejected_uploads(self, session, catalog, preview_store, fake_extract):
        """Empty, oversized and non-PDF uploads are refused."""
        fake_extract()
        service = PdfImportService(session, preview_store)

        with pytest.raises(InvalidInputError):
            await service.preview(b"")
        with pytest.raises(InvalidInputError):
            await service.preview(b"GIF89a")
        with pytest.raises(PayloadTooLargeError):
            await service.preview(PDF_BYTES + b"0" * settings.pdf_max_upload_bytes)

    @pytest.mark.asyncio
    async def test_unreadable_pdf(self, session, catalog, preview_store, fake_extract):
        """A PDF that cannot be opened is unprocessable."""
        fake_extract(error=PdfReadError("broken"))

        with pytest.raises(UnprocessableError):
            await PdfImportService(session, preview_store).preview(PDF_BYTES)

    @pytest.mark.asyncio
    async def test_unrecognized_document(self, session, catalog, preview_store, fake_extract):
        """Without an ARC the document is not an order acknowledgement."""
        fake_extract(text="Facture\n2,00 1,00 2,00\nBIG BAG 0/31.5")

        with pytest.raises(UnprocessableError) as exc_info:
            await PdfImportService(session, preview_store).preview(PDF_BYTES)

        assert "preview" in exc_info.value.detail
        assert len(preview_store) == 0

    @pytest.mark.asyncio
    async def test_unknown_labels(self, session, catalog, preview_store, fake_extract):
        """Labels missing from the catalog are all reported."""
        fake_extract(text=ORDER_TEXT.replace("ROCHE CONCASSEE 20/40", "GALET ROULE"))

        with pytest.raises(UnprocessableError) as exc_info:
            await PdfImportService(session, preview_store).preview(PDF_BYTES)

        assert exc_info.value.missing_labels == ["GALET ROULE"]

    @pytest.mark.asyncio
    async def test_duplicate_is_flagged(self, session, catalog, preview_store, fake_extract, make_order):
        """A known ARC is reported at preview time."""
        order_id = await make_order(arc="445566")
        fake_extract()

        response = await PdfImportService(session, preview_store).preview(PDF_BYTES)

        assert response.dedupe.match is True
        assert response.dedupe.existing_order_id == order_id


class TestConfirm:
    """Tests for PdfImportService.confirm."""

    @pytest.mark.asyncio
    async def test_confirm_creates_order(self, session, catalog, users, preview_store, fake_extract):
        """Confirmation creates the order and forgets the preview."""
        fake_extract()
        service = PdfImportService(session, preview_store)
        response = await service.preview(PDF_BYTES)

        outcome = await service.confirm(
            response.import_id,
            ConfirmRequest(
                preview=PreviewPayload(**response.preview, priority="URGENT"),
                internal_comment="Appeler avant livraison",
            ),
            created_by=users["office"],
        )

        assert outcome.action == "created"
        assert outcome.arc == "445566"
        assert outcome.internal_comment_saved is True
        assert await preview_store.get(response.import_id) is None

    @pytest.mark.asyncio
    async def test_confirm_twice(self, session, catalog, preview_store, fake_extract):
        """A second import of the same ARC is skipped."""
        fake_extract()
        service = PdfImportService(session, preview_store)
        first_preview = await service.preview(PDF_BYTES)
        second_preview = await service.preview(PDF_BYTES)

        first = await service.confirm(
            first_preview.import_id, ConfirmRequest(preview=PreviewPayload(**first_preview.preview))
        )
        second = await service.confirm(
            second_preview.import_id, ConfirmRequest(preview=PreviewPayload(**second_preview.preview))
        )

        assert first.action == "created"
        assert second.skipped
        assert second.order_id == first.order_id

    @pytest.mark.asyncio
    async def test_unknown_import(self, session, catalog, preview_store):
        """Unknown or expired import ids are not found."""
        with pytest.raises(NotFoundError):
            await PdfImportService(session, preview_store).confirm(
                "nope", ConfirmRequest(preview=PreviewPayload(arc="445566"))
            )

    @pytest.mark.asyncio
    async def test_discard(self, session, catalog, preview_store, fake_extract):
        """A discarded preview cannot be confirmed."""
        fake_extract()
        service = PdfImportService(session, preview_store)
        response = await service.preview(PDF_BYTES)

        assert await service.discard(response.import_id) is True
        assert await service.discard(response.import_id) is False
