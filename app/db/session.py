"""
Database session management.

This module provides utilities for creating and managing database sessions
using async SQLAlchemy with PostgreSQL (asyncpg) or SQLite (aiosqlite).
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.logging import logger
from app.models.base import Base


def build_engine(url: str) -> AsyncEngine:
    """
    Create an async engine.

    SQLite connections may be used from any thread, and an in-memory
    database is held on one shared connection so every session sees the
    same tables. Pool sizing only applies to server databases.
    """
    if url.startswith("sqlite"):
        if ":memory:" in url:
            return create_async_engine(
                url,
                echo=False,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(url, echo=False, future=True, connect_args={"check_same_thread": False})
    return create_async_engine(
        url,
        echo=settings.debug,
        future=True,
        pool_size=settings.database.pool_size,
        max_overflow=settings.database.max_overflow,
        pool_pre_ping=True,
        pool_recycle=settings.database.pool_recycle,
    )


# Create async engine
engine = build_engine(settings.database.url)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create all tables registered on the declarative base."""
    import app.models  # noqa: F401  (registers every model on Base.metadata)

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a database session.

    This function is used as a dependency in FastAPI endpoints to provide
    a database session. It ensures the session is properly closed after use.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.error(f"Database session error: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Run a block as one atomic mutation.

    The outermost block commits on success and rolls back on any exception.
    Nested blocks (a service calling another service) join the outer
    transaction, so a breakdown write, the project and budget item recompute
    it triggers and their audit entries are committed together or not at all.

    Args:
        db: Database session

    Yields:
        The same session
    """
    depth = db.info.get("uow_depth", 0)
    db.info["uow_depth"] = depth + 1
    try:
        yield db
        if depth == 0:
            await db.commit()
    except Exception as e:
        if depth == 0:
            logger.error(f"Transaction rolled back: {e}")
            await db.rollback()
        raise
    finally:
        db.info["uow_depth"] = depth
