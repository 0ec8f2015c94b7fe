"""Database session configuration."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ledgerline.core.config import settings


def build_engine(url: str) -> AsyncEngine:
    """Create the async engine for ``url``.

    PostgreSQL gets a sized pool and server-side timeouts so no statement can
    block a balance mutation indefinitely. SQLite (local runs and tests) takes
    the driver defaults.
    """
    if url.startswith("sqlite"):
        return create_async_engine(url)

    timeout_ms = str(settings.DB_STATEMENT_TIMEOUT_SECONDS * 1000)
    connect_args = {
        "server_settings": {
            "statement_timeout": timeout_ms,
            # Kill idle transactions after 5 minutes
            "idle_in_transaction_session_timeout": "300000",
        },
        "command_timeout": settings.DB_STATEMENT_TIMEOUT_SECONDS,
    }
    if settings.POSTGRES_SSLMODE == "disable":
        connect_args["ssl"] = False

    return create_async_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_timeout=30,
        isolation_level="READ COMMITTED",
        connect_args=connect_args,
    )


async_engine = build_engine(settings.SQLALCHEMY_ASYNC_DATABASE_URI)

AsyncSessionLocal = async_sessionmaker(
    autocommit=False, autoflush=False, expire_on_commit=False, bind=async_engine
)


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Get an async database session that can be used as a context manager.

    Example:
    -------
        async with get_db_context() as db:
            await db.execute(...)

    """
    async with AsyncSessionLocal() as db:
        yield db


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session to be used in dependency injection."""
    async with AsyncSessionLocal() as db:
        yield db
