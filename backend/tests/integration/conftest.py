"""Shared fixtures for database integration tests.

These fixtures provide:
- A file-backed SQLite database per test, so several sessions can share it
- The full schema created from the ORM metadata
- Real services wired to the real repositories
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@pytest_asyncio.fixture
async def engine(tmp_path):
    """Async engine on a fresh SQLite file with every table created."""
    from ledgerline.db.session import build_engine
    from ledgerline.models import Base

    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    """Session factory matching the application's settings."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """One session for the test body."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def services(billing_config, fake_payment_gateway, fake_billing_metrics):
    """Production services over the SQL repositories.

    Returns:
        dict keyed like the container attributes
    """
    from ledgerline.core.container.factory import (
        _create_billing_services,
        _create_ledger_services,
    )

    ledger = _create_ledger_services(billing_config, fake_billing_metrics)
    billing = _create_billing_services(
        billing_config, ledger, fake_payment_gateway, fake_billing_metrics
    )
    return {**ledger, **billing}
