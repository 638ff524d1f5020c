"""Async database configuration.

Provides:
- Async SQLAlchemy engine and session factory (shared process-wide pool)
- Transactional session context manager (commit on success, rollback on error)
- Table creation for local development
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ordertrack.config import settings
from ordertrack.infra.logging import get_logger

logger = get_logger(__name__)

# Type alias for dependency injection
DatabaseSession = AsyncSession

# Global engine (initialized lazily)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async database engine."""
    global _engine

    if _engine is None:
        url = make_url(settings.database_url)
        options: dict = {"echo": settings.debug}

        if url.get_backend_name() != "sqlite":
            options.update(
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_pool_max_overflow,
                pool_pre_ping=True,
                pool_recycle=1800,
            )

        logger.info(
            "Creating database engine",
            backend=url.get_backend_name(),
            pool_size=options.get("pool_size"),
        )
        _engine = create_async_engine(url, **options)

    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory."""
    global _session_factory

    if _session_factory is None:
        _session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    return _session_factory


_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(session: AsyncSession, entity):
    """INSERT construct of the session's dialect.

    Gives access to `on_conflict_do_nothing` / `on_conflict_do_update`,
    which both supported backends implement.

    Raises:
        NotImplementedError: Backend other than PostgreSQL or SQLite
    """
    name = session.get_bind().dialect.name
    try:
        return _DIALECT_INSERTS[name](entity)
    except KeyError:
        raise NotImplementedError(f"No upsert support for dialect {name!r}") from None


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session wrapping one transaction.

    Everything done through the yielded session is committed when the
    block exits normally and rolled back when it raises, so a failed
    multi-row operation never leaves partial state behind.

    Example:
        async with get_db_session() as session:
            await OrderService(session).delete_order(order_id)
    """
    factory = get_session_factory()
    session = factory()

    try:
        yield session
        await session.commit()

    except Exception as e:
        await session.rollback()
        logger.debug("Database session rolled back", error=str(e), error_type=type(e).__name__)
        raise

    finally:
        await session.close()


async def init_models() -> None:
    """Create all tables (local development with SQLite)."""
    from ordertrack.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def close_db_engine() -> None:
    """Close the database engine and all connections.

    Call this during application shutdown.
    """
    global _engine, _session_factory

    if _engine is not None:
        logger.info("Closing database engine")
        await _engine.dispose()
        _engine = None
        _session_factory = None


async def verify_db_connection() -> bool:
    """Verify database connectivity.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        async with get_db_session() as session:
            await session.execute(text("SELECT 1"))
            return True
    except Exception as e:
        logger.error("Database connection failed", error=str(e))
        return False
