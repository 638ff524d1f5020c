"""Order comment thread endpoints."""

from fastapi import APIRouter, status

from ordertrack.api.deps import CurrentUserId, DbSession, RequiredUserId
from ordertrack.schemas.comment import CommentCreate, CommentThread, CommentView
from ordertrack.services.comment_service import CommentService

router = APIRouter()


@router.get("/{order_id}/comments", response_model=CommentThread)
async def list_comments(order_id: int, db: DbSession, user_id: CurrentUserId) -> CommentThread:
    """Thread of an order; marks it read for the caller."""
    thread = await CommentService(db).list_comments(order_id, user_id)
    await db.commit()
    return thread


@router.post(
    "/{order_id}/comments",
    response_model=CommentView,
    status_code=status.HTTP_201_CREATED,
)
async def post_comment(
    order_id: int,
    body: CommentCreate,
    db: DbSession,
    user_id: RequiredUserId,
) -> CommentView:
    comment = await CommentService(db).post_comment(order_id, user_id, body.content)
    await db.commit()
    return comment
