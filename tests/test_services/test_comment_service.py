"""Tests for order comment threads."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select

from ordertrack.core.errors import InvalidInputError, NotFoundError
from ordertrack.models import OrderCommentRead
from ordertrack.services.comment_service import MAX_COMMENT_LENGTH, CommentService, comment_counts


class TestComments:
    """Tests for posting and reading comments."""

    @pytest.mark.asyncio
    async def test_post_comment(self, session, make_order, users):
        """A posted comment carries its trimmed content and author name."""
        order_id = await make_order()

        view = await CommentService(session).post_comment(order_id, users["office"], "  Client rappelé  ")

        assert view.content == "Client rappelé"
        assert view.author_id == users["office"]
        assert view.author_name == "Claire Martin"

    @pytest.mark.asyncio
    async def test_rejected_comments(self, session, make_order, users):
        """Empty and oversized messages, and unknown orders, are refused."""
        order_id = await make_order()
        service = CommentService(session)

        with pytest.raises(InvalidInputError):
            await service.post_comment(order_id, users["office"], "   ")
        with pytest.raises(InvalidInputError):
            await service.post_comment(order_id, users["office"], "x" * (MAX_COMMENT_LENGTH + 1))
        with pytest.raises(NotFoundError):
            await service.post_comment(999, users["office"], "Bonjour")

    @pytest.mark.asyncio
    async def test_unread_counters(self, session, make_order, users):
        """Each user has their own read cursor; own messages are never unread."""
        order_id = await make_order()
        service = CommentService(session)
        office, workshop = users["office"], users["workshop"]

        await service.post_comment(order_id, office, "Premier message")
        await service.post_comment(order_id, office, "Second message")

        assert (await service.get_counts(order_id, office)).unread_count == 0
        workshop_counts = await service.get_counts(order_id, workshop)
        assert workshop_counts.messages_count == 2
        assert workshop_counts.unread_count == 2

        thread = await service.list_comments(order_id, workshop)
        assert [c.content for c in thread.comments] == ["Premier message", "Second message"]
        assert thread.unread_count == 2
        assert (await service.get_counts(order_id, workshop)).unread_count == 0

        await service.post_comment(order_id, office, "Troisième message")
        assert (await service.get_counts(order_id, workshop)).unread_count == 1

        await service.post_comment(order_id, workshop, "Bien reçu")
        assert (await service.get_counts(order_id, workshop)).unread_count == 0
        assert (await service.get_counts(order_id, office)).unread_count == 1

    @pytest.mark.asyncio
    async def test_anonymous_viewer(self, session, make_order, users):
        """Without a user there is nothing unread."""
        order_id = await make_order()
        await CommentService(session).post_comment(order_id, users["office"], "Bonjour")

        counts = await comment_counts(session, [order_id], None)

        assert counts[order_id].messages_count == 1
        assert counts[order_id].unread_count == 0

    @pytest.mark.asyncio
    async def test_list_unknown_order(self, session, catalog):
        """Listing comments of a missing order is a not found."""
        with pytest.raises(NotFoundError):
            await CommentService(session).list_comments(999, None)


class TestReadCursor:
    """Tests for the per-user read cursor."""

    @pytest.mark.asyncio
    async def test_mark_read_twice_keeps_one_cursor(self, session, make_order, users):
        """A second read of the same thread moves the existing cursor."""
        order_id = await make_order()
        service = CommentService(session)
        first = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
        second = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

        await service.mark_read(order_id, users["workshop"], at=first)
        await service.mark_read(order_id, users["workshop"], at=second)

        rows = (
            await session.execute(
                select(OrderCommentRead.last_read_at).where(
                    OrderCommentRead.order_id == order_id,
                    OrderCommentRead.user_id == users["workshop"],
                )
            )
        ).scalars().all()
        assert len(rows) == 1
        assert rows[0].replace(tzinfo=None) == second.replace(tzinfo=None)

    @pytest.mark.asyncio
    async def test_post_then_list_by_same_user(self, session, make_order, users):
        """Posting creates the cursor; listing afterwards updates it."""
        order_id = await make_order()
        service = CommentService(session)
        office = users["office"]

        await service.post_comment(order_id, office, "Camion prévu demain")
        thread = await service.list_comments(order_id, office)
        await service.list_comments(order_id, office)

        assert thread.messages_count == 1
        assert thread.unread_count == 0
        count = await session.scalar(
            select(func.count(OrderCommentRead.id)).where(OrderCommentRead.order_id == order_id)
        )
        assert count == 1
