"""Integration test fixtures for Speak Casually.

Provides an async HTTP client and a sync TestClient (for WebSocket) that
use an in-memory SQLite database and a temporary object store.
"""

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from speakcasually.api.app import create_app
from speakcasually.services.change_feed import reset_change_feed
from speakcasually.services.storage import database


@pytest.fixture(autouse=True)
def _fresh_change_feed():
    reset_change_feed()
    yield
    reset_change_feed()


@pytest.fixture
def app():
    """Create a fresh FastAPI application instance."""
    return create_app()


@pytest.fixture
async def async_client(app, db_engine, object_store):
    """AsyncClient backed by the in-memory test engine.

    Injects the test engine into the database module so that all routes
    use the same in-memory SQLite with tables already created.
    """
    database._engine = db_engine
    database._session_factory = None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    database.reset_engine()


@pytest.fixture
def test_client(app, db_engine, object_store):
    """Synchronous TestClient for WebSocket tests.

    Uses the same DB injection pattern as async_client.
    """
    database._engine = db_engine
    database._session_factory = None
    with TestClient(app) as c:
        yield c
    database.reset_engine()
