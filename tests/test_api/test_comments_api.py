"""Tests for comment routes."""

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from ordertrack.api.deps import get_db
from ordertrack.main import app
from ordertrack.models import OrderComment


class TestCommentRoutes:
    """Tests for /orders/{id}/comments."""

    @pytest.mark.asyncio
    async def test_post_requires_user(self, client: AsyncClient, make_order):
        """Anonymous comments are refused."""
        order_id = await make_order()

        response = await client.post(f"/orders/{order_id}/comments", json={"content": "Bonjour"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_thread(self, client: AsyncClient, make_order, users):
        """Another user sees the message as unread until they open the thread."""
        order_id = await make_order()
        office = {"X-User-Id": str(users["office"])}
        workshop = {"X-User-Id": str(users["workshop"])}

        response = await client.post(
            f"/orders/{order_id}/comments", json={"content": "Client pressé"}, headers=office
        )
        assert response.status_code == 201
        assert response.json()["author_name"] == "Claire Martin"

        listing = (await client.get("/orders/active", headers=workshop)).json()
        assert listing["items"][0]["messages_count"] == 1
        assert listing["items"][0]["unread_count"] == 1

        thread = (await client.get(f"/orders/{order_id}/comments", headers=workshop)).json()
        assert [c["content"] for c in thread["comments"]] == ["Client pressé"]
        assert thread["unread_count"] == 1

        detail = (await client.get(f"/orders/{order_id}", headers=workshop)).json()
        assert detail["counters"] == {"messages_count": 1, "unread_count": 0}

    @pytest.mark.asyncio
    async def test_empty_message(self, client: AsyncClient, make_order, users):
        order_id = await make_order()

        response = await client.post(
            f"/orders/{order_id}/comments",
            json={"content": "   "},
            headers={"X-User-Id": str(users["office"])},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_comment_committed_by_route(self, client: AsyncClient, session, make_order, users):
        """The route commits itself; nothing relies on the session closing."""

        async def discarding_get_db():
            yield session
            await session.rollback()

        app.dependency_overrides[get_db] = discarding_get_db
        order_id = await make_order()

        response = await client.post(
            f"/orders/{order_id}/comments",
            json={"content": "Chargement 14h"},
            headers={"X-User-Id": str(users["office"])},
        )

        assert response.status_code == 201
        count = await session.scalar(
            select(func.count(OrderComment.id)).where(OrderComment.order_id == order_id)
        )
        assert count == 1
