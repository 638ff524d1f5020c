"""PDF import endpoints.

Upload a supplier acknowledgement to get a preview, then confirm (or
discard) it. Only the confirmation writes to the database.
"""

from fastapi import APIRouter, File, Response, UploadFile, status
from fastapi.responses import JSONResponse

from ordertrack.api.deps import CurrentUserId, DbSession, ImportStore
from ordertrack.config import settings
from ordertrack.infra.logging import get_logger
from ordertrack.schemas.pdf_import import ConfirmRequest, ConfirmResponse, PreviewResponse
from ordertrack.services.pdf_import_service import PdfImportService

router = APIRouter()
logger = get_logger(__name__)


@router.post("/preview", response_model=PreviewResponse)
async def preview_pdf(
    db: DbSession,
    store: ImportStore,
    user_id: CurrentUserId,
    file: UploadFile = File(..., description="Order acknowledgement PDF"),
) -> PreviewResponse:
    """Parse a PDF and return the candidate order with an import id."""
    # One byte over the limit is enough to reject the upload
    data = await file.read(settings.pdf_max_upload_bytes + 1)
    return await PdfImportService(db, store).preview(
        data, filename=file.filename, created_by=user_id
    )


@router.post(
    "/{import_id}/confirm",
    response_model=ConfirmResponse,
    responses={409: {"model": ConfirmResponse, "description": "ARC already imported"}},
)
async def confirm_import(
    import_id: str,
    body: ConfirmRequest,
    db: DbSession,
    store: ImportStore,
    user_id: CurrentUserId,
):
    """Create the order from the reviewed preview.

    An already known ARC answers 409 with action "skipped".
    """
    outcome = await PdfImportService(db, store).confirm(import_id, body, created_by=user_id)
    await db.commit()
    response = ConfirmResponse(
        action=outcome.action,
        order_id=outcome.order_id,
        arc=outcome.arc,
        internal_comment_saved=outcome.internal_comment_saved,
        message=(
            "Commande déjà existante : aucune création effectuée." if outcome.skipped else None
        ),
    )
    if outcome.skipped:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=response.model_dump())
    return response


@router.delete("/{import_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
async def discard_preview(import_id: str, store: ImportStore, db: DbSession) -> Response:
    await PdfImportService(db, store).discard(import_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
