"""PostgreSQL database session configuration."""

import logging
from typing import AsyncGenerator, Optional, Tuple

import sqlalchemy as sa
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.config.settings import Settings

logger = logging.getLogger(__name__)


def get_database_url(url: Optional[str]) -> str:
    """Get properly formatted database URL for asyncpg."""
    if not url:
        raise ValueError("DATABASE_URL is not set")

    # Convert postgres:// to postgresql:// for compatibility
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)

    # Convert to asyncpg URL if needed
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)

    return url


async def init_postgres(settings: Settings) -> Tuple[AsyncEngine, async_sessionmaker]:
    """Create the engine and session factory, optionally creating tables."""
    database_url = get_database_url(settings.DATABASE_URL)

    engine = create_async_engine(
        database_url,
        echo=settings.DEBUG,
        poolclass=NullPool,
        future=True,
    )

    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    if settings.AUTO_CREATE_TABLES:
        await create_tables(engine)

    logger.info("Database connection initialized")
    return engine, session_factory


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables known to the model metadata."""
    from app.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created")


async def close_postgres(engine: Optional[AsyncEngine]) -> None:
    """Close database connection."""
    if engine:
        await engine.dispose()
        logger.info("Database connection closed")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get async database session.

    One session is one transaction: everything the request writes is
    committed together or rolled back together.
    """
    context = getattr(request.app.state, "context", None)
    if context is None or context.session_factory is None:
        raise RuntimeError("Database not initialized. Call init_postgres() first.")

    async with context.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def check_postgres_health(engine: Optional[AsyncEngine]) -> bool:
    """Check if the database is healthy by executing a simple query."""
    if not engine:
        return False

    try:
        async with engine.connect() as conn:
            await conn.execute(sa.text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
