"""PDF import flow - preview an uploaded order, then confirm it.

Nothing is written to the database at preview time; the parsed order is
kept in the preview store until the office confirms or discards it.
"""

import asyncio

from sqlalchemy.ext.asyncio import AsyncSession

from ordertrack.config import settings
from ordertrack.core.errors import (
    InvalidInputError,
    NotFoundError,
    PayloadTooLargeError,
    UnprocessableError,
)
from ordertrack.core.pdf_parser import parse_order_text
from ordertrack.core.preview_store import PreviewStore, get_preview_store
from ordertrack.core.quantities import normalize_label
from ordertrack.infra.logging import get_logger
from ordertrack.infra.pdf_text import PdfReadError, extract_pdf_text, has_pdf_signature
from ordertrack.schemas.pdf_import import ConfirmRequest, Dedupe, PreviewResponse
from ordertrack.services.catalog_service import CatalogService
from ordertrack.services.order_service import ImportOutcome, OrderService

logger = get_logger(__name__)

RAW_PREVIEW_CHARS = 800


class PdfImportService:
    """Two-step import of supplier order acknowledgements."""

    def __init__(self, session: AsyncSession, store: PreviewStore | None = None) -> None:
        """Initialize the import service.

        Args:
            session: Database session (read-only during preview)
            store: Preview store (global store if not provided)
        """
        self.session = session
        self.store = store if store is not None else get_preview_store()

    async def preview(
        self,
        data: bytes,
        filename: str | None = None,
        created_by: int | None = None,
    ) -> PreviewResponse:
        """Parse an uploaded PDF and keep the result for confirmation.

        Raises:
            PayloadTooLargeError: Upload above the size limit
            InvalidInputError: Empty upload or not a PDF
            UnprocessableError: No ARC, no product line, or labels unknown
                to the catalog
        """
        if not data:
            raise InvalidInputError('Aucun fichier fourni (champ "file" manquant)')
        if len(data) > settings.pdf_max_upload_bytes:
            raise PayloadTooLargeError(
                "Fichier trop volumineux",
                max_bytes=settings.pdf_max_upload_bytes,
            )
        if not has_pdf_signature(data):
            raise InvalidInputError("Fichier invalide (signature PDF absente)")

        try:
            extracted = await asyncio.to_thread(extract_pdf_text, data)
        except PdfReadError as e:
            raise UnprocessableError("PDF illisible", reason=str(e)) from e

        parsed = parse_order_text(extracted.text)
        preview = parsed.to_dict()

        if not parsed.arc:
            raise UnprocessableError("PDF non reconnu : ARC introuvable.", preview=preview)
        if not parsed.products:
            raise UnprocessableError("PDF non reconnu : aucune ligne produit détectée.", preview=preview)

        labels = [normalize_label(p.pdf_label) for p in parsed.products]
        found = await CatalogService(self.session).label_map(labels)
        missing = list(dict.fromkeys(label for label in labels if label not in found))
        if missing:
            raise UnprocessableError(
                "Produits introuvables en base pour certains libellés PDF.",
                missing_labels=missing,
                preview=preview,
            )

        existing = await OrderService(self.session).find_by_arc(parsed.arc)

        item = await self.store.put(
            preview=preview,
            meta={
                "filename": filename,
                "size": len(data),
                "pages": extracted.page_count,
                "raw_preview": extracted.text[:RAW_PREVIEW_CHARS],
            },
            created_by=created_by,
        )

        logger.info(
            "PDF preview stored",
            import_id=item.import_id,
            arc=parsed.arc,
            products=len(parsed.products),
            duplicate=existing is not None,
        )
        return PreviewResponse(
            import_id=item.import_id,
            preview=preview,
            meta=item.meta,
            dedupe=Dedupe(
                match=existing is not None,
                existing_order_id=existing.id if existing is not None else None,
                message=(
                    "Commande déjà présente : la validation n'ajoutera rien."
                    if existing is not None
                    else None
                ),
            ),
            ttl_seconds=self.store.ttl_seconds,
        )

    async def confirm(
        self,
        import_id: str,
        request: ConfirmRequest,
        created_by: int | None = None,
    ) -> ImportOutcome:
        """Create the order from the (possibly edited) preview.

        Raises:
            NotFoundError: Unknown or expired import id
        """
        item = await self.store.get(import_id)
        if item is None:
            raise NotFoundError("Preview introuvable ou expirée", import_id=import_id)

        outcome = await OrderService(self.session).create_order_from_preview(
            request.preview,
            created_by=created_by,
            internal_comment=request.internal_comment,
        )
        await self.store.delete(import_id)

        logger.info(
            "PDF import confirmed",
            import_id=import_id,
            action=outcome.action,
            order_id=outcome.order_id,
        )
        return outcome

    async def discard(self, import_id: str) -> bool:
        removed = await self.store.delete(import_id)
        logger.debug("PDF preview discarded", import_id=import_id, removed=removed)
        return removed
