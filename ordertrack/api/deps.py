"""FastAPI dependencies for dependency injection.

Provides:
- Database session (one transaction per request)
- Caller identity from the X-User-Id header
- Import preview store
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from ordertrack.core.events import publish_event
from ordertrack.core.preview_store import PreviewStore, get_preview_store
from ordertrack.infra.database import get_db_session
from ordertrack.infra.logging import get_logger

logger = get_logger(__name__)


async def get_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> int | None:
    """Extract the caller's user id from the request header.

    Token issuance and verification happen upstream; the gateway forwards
    the authenticated user id.

    Raises:
        HTTPException: 400 if the header is not an integer
    """
    if not x_user_id:
        return None
    try:
        return int(x_user_id)
    except ValueError:
        logger.warning("Invalid X-User-Id header", value=x_user_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Id invalide",
        )


async def require_user_id(
    user_id: Annotated[int | None, Depends(get_user_id)],
) -> int:
    """Same as get_user_id, for operations that need an author."""
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Utilisateur non identifié",
        )
    return user_id


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session committed when the request succeeds.

    Yields:
        AsyncSession for the request
    """
    async with get_db_session() as session:
        yield session


async def get_import_store() -> PreviewStore:
    """Get the import preview store dependency."""
    return get_preview_store()


async def commit_and_publish(
    session: AsyncSession,
    event_type: str,
    order_id: int,
    **data,
) -> None:
    """Commit the request transaction, then notify production clients.

    Events are only published for changes that are durable.
    """
    await session.commit()
    publish_event(event_type, order_id=order_id, **data)


# Type aliases for cleaner annotations
DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentUserId = Annotated[int | None, Depends(get_user_id)]
RequiredUserId = Annotated[int, Depends(require_user_id)]
ImportStore = Annotated[PreviewStore, Depends(get_import_store)]
