"""Comment thread store - per-order messages and per-user read cursors."""

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ordertrack.core.errors import InvalidInputError, NotFoundError
from ordertrack.infra.database import dialect_insert
from ordertrack.infra.logging import get_logger
from ordertrack.models import Order, OrderComment, OrderCommentRead, User, utcnow
from ordertrack.schemas.comment import CommentThread, CommentView
from ordertrack.schemas.common import CommentCounters

logger = get_logger(__name__)

MAX_COMMENT_LENGTH = 5000


async def comment_counts(
    session: AsyncSession,
    order_ids: Sequence[int],
    user_id: int | None,
) -> dict[int, CommentCounters]:
    """Message and unread counters for several orders at once.

    Unread comments are the ones written by someone else after the
    caller's read cursor; without a cursor every such comment is unread.
    """
    counts = {oid: CommentCounters() for oid in order_ids}
    if not order_ids:
        return counts

    ids = list(order_ids)
    totals = await session.execute(
        select(OrderComment.order_id, func.count(OrderComment.id))
        .where(OrderComment.order_id.in_(ids))
        .group_by(OrderComment.order_id)
    )
    for order_id, n in totals.all():
        counts[order_id].messages_count = int(n)

    if user_id is None:
        return counts

    cursor = (
        select(OrderCommentRead.order_id, OrderCommentRead.last_read_at)
        .where(OrderCommentRead.user_id == user_id)
        .subquery()
    )
    unread = await session.execute(
        select(OrderComment.order_id, func.count(OrderComment.id))
        .outerjoin(cursor, cursor.c.order_id == OrderComment.order_id)
        .where(OrderComment.order_id.in_(ids))
        .where(or_(OrderComment.author_id.is_(None), OrderComment.author_id != user_id))
        .where(or_(cursor.c.last_read_at.is_(None), OrderComment.created_at > cursor.c.last_read_at))
        .group_by(OrderComment.order_id)
    )
    for order_id, n in unread.all():
        counts[order_id].unread_count = int(n)

    return counts


class CommentService:
    """Append-only comments on orders with read tracking."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _ensure_order(self, order_id: int) -> None:
        exists = await self.session.scalar(select(Order.id).where(Order.id == order_id))
        if exists is None:
            raise NotFoundError("Commande introuvable", order_id=order_id)

    async def post_comment(self, order_id: int, author_id: int | None, content: str | None) -> CommentView:
        """Add a comment and mark the thread read for its author.

        Raises:
            InvalidInputError: Empty content
            NotFoundError: Unknown order
        """
        text = (content or "").strip()
        if not text:
            raise InvalidInputError("Message vide")
        if len(text) > MAX_COMMENT_LENGTH:
            raise InvalidInputError(
                f"Message trop long (max {MAX_COMMENT_LENGTH} caractères)",
                max_length=MAX_COMMENT_LENGTH,
            )

        await self._ensure_order(order_id)

        comment = OrderComment(order_id=order_id, author_id=author_id, content=text, created_at=utcnow())
        self.session.add(comment)
        await self.session.flush()

        if author_id is not None:
            await self.mark_read(order_id, author_id, at=comment.created_at)

        logger.info("Comment posted", order_id=order_id, author_id=author_id, comment_id=comment.id)

        author_name = None
        if author_id is not None:
            author = await self.session.get(User, author_id)
            author_name = author.display_name if author is not None else None

        return CommentView(
            id=comment.id,
            order_id=order_id,
            author_id=author_id,
            author_name=author_name,
            content=comment.content,
            created_at=comment.created_at,
        )

    async def list_comments(self, order_id: int, user_id: int | None) -> CommentThread:
        """Thread of an order, oldest first.

        The counters describe the thread as it was before this read; the
        viewer's cursor is then advanced.
        """
        await self._ensure_order(order_id)

        stmt = (
            select(OrderComment, User)
            .outerjoin(User, User.id == OrderComment.author_id)
            .where(OrderComment.order_id == order_id)
            .order_by(OrderComment.created_at.asc(), OrderComment.id.asc())
        )
        comments = [
            CommentView(
                id=c.id,
                order_id=c.order_id,
                author_id=c.author_id,
                author_name=u.display_name if u is not None else None,
                content=c.content,
                created_at=c.created_at,
            )
            for c, u in (await self.session.execute(stmt)).all()
        ]

        counts = await self.get_counts(order_id, user_id)
        if user_id is not None:
            await self.mark_read(order_id, user_id)

        return CommentThread(
            order_id=order_id,
            comments=comments,
            messages_count=counts.messages_count,
            unread_count=counts.unread_count,
        )

    async def get_counts(self, order_id: int, user_id: int | None) -> CommentCounters:
        """Counters for one order; does not move the read cursor."""
        return (await comment_counts(self.session, [order_id], user_id))[order_id]

    async def mark_read(self, order_id: int, user_id: int, at: datetime | None = None) -> datetime:
        """Move the user's read cursor of an order to `at` (default now).

        Single INSERT ... ON CONFLICT statement, so concurrent first reads
        of the same thread cannot collide on the (order, user) key.
        """
        read_at = at or utcnow()
        stmt = dialect_insert(self.session, OrderCommentRead).values(
            order_id=order_id,
            user_id=user_id,
            last_read_at=read_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[OrderCommentRead.order_id, OrderCommentRead.user_id],
            set_={"last_read_at": stmt.excluded.last_read_at},
        )
        await self.session.execute(stmt)

        logger.debug("Comment cursor advanced", order_id=order_id, user_id=user_id)
        return read_at
