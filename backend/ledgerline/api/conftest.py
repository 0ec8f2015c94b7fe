"""API test fixtures.

Provides an async HTTP client wired to the FastAPI app with the DI container
overridden to use fakes. Available to all colocated API tests under api/.

Pattern:
    1. Override get_container -> returns test_container (real services over fakes)
    2. Override get_db        -> returns the AsyncMock session
    3. Test sends identity headers, asserts on HTTP response + fake state

Identity is left to the real get_context so header handling is exercised.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ledgerline.api.deps import get_container, get_db

TEST_ADMIN_KEY = "test-admin-key"
TEST_USER = "auth0|alice"


@pytest.fixture
def user_headers():
    """Headers identifying the default end user."""
    return {"X-User-Id": TEST_USER}


@pytest.fixture
def admin_headers():
    """Headers carrying the admin key configured for tests."""
    return {"X-Admin-Key": TEST_ADMIN_KEY, "X-Admin-Id": "ops@example.com"}


@pytest_asyncio.fixture
async def client(test_container, db):
    """Async HTTP client with faked DI container and database session."""
    from ledgerline.main import app

    async def _fake_db():
        yield db

    app.dependency_overrides[get_container] = lambda: test_container
    app.dependency_overrides[get_db] = _fake_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
