"""Shared fixtures: in-memory database, seeded catalog and API client."""

import os

# Must be set before ordertrack.config builds its settings
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "dev")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import date
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ordertrack.api.deps import get_db, get_import_store
from ordertrack.core.preview_store import PreviewStore
from ordertrack.main import app
from ordertrack.models import Base, Product, User
from ordertrack.schemas.order import OrderCreate, OrderLineInput
from ordertrack.services.order_service import OrderService


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    factory = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def users(session: AsyncSession) -> dict[str, int]:
    """Office and workshop users, by role name."""
    office = User(email="bureau@example.com", first_name="Claire", last_name="Martin", role="BUREAU")
    workshop = User(email="atelier@example.com", first_name="Paul", last_name="Durand", role="PRODUCTION")
    session.add_all([office, workshop])
    await session.commit()
    return {"office": office.id, "workshop": workshop.id}


@pytest_asyncio.fixture
async def catalog(session: AsyncSession) -> dict[str, int]:
    """Catalog products, by short name."""
    products = {
        "bigbag": Product(pdf_label_exact="BIG BAG 0/31.5", category="BIGBAG", weight_per_unit_kg=1000.0),
        "roche": Product(pdf_label_exact="ROCHE CONCASSEE 20/40", category="ROCHE", weight_per_unit_kg=25.0),
        "sable": Product(pdf_label_exact="SABLE 0/4", category="AUTRE", weight_per_unit_kg=35.0),
        "old": Product(
            pdf_label_exact="ANCIEN PRODUIT",
            category="AUTRE",
            weight_per_unit_kg=10.0,
            is_active=False,
        ),
    }
    session.add_all(products.values())
    await session.commit()
    return {name: product.id for name, product in products.items()}


@pytest.fixture
def make_order(session: AsyncSession, catalog: dict[str, int]):
    """Factory creating a committed order; returns its id."""

    async def _make(
        arc: str = "123456",
        lines: list[tuple[str, int]] | None = None,
        priority: str = "NORMAL",
        pickup_date: date | None = None,
        client_name: str | None = "SARL DUPONT",
    ) -> int:
        lines = lines if lines is not None else [("bigbag", 10)]
        order = await OrderService(session).create_order(
            OrderCreate(
                arc=arc,
                client_name=client_name,
                order_date=date(2024, 3, 5),
                pickup_date=pickup_date,
                priority=priority,
            ),
            [OrderLineInput(product_id=catalog[name], quantity=qty) for name, qty in lines],
        )
        await session.commit()
        return order.id

    return _make


@pytest.fixture
def preview_store() -> PreviewStore:
    return PreviewStore(ttl_seconds=60, sweep_interval_seconds=3600)


@pytest_asyncio.fixture
async def client(
    session: AsyncSession,
    preview_store: PreviewStore,
) -> AsyncGenerator[AsyncClient, None]:
    """API client bound to the test database session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    async def override_get_import_store() -> PreviewStore:
        return preview_store

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_import_store] = override_get_import_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
