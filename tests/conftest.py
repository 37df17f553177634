"""Shared fixtures: a fresh in-memory service graph per test and an HTTP client."""

import pytest
from httpx import ASGITransport, AsyncClient

from interior_api.api.rate_limit import FixedWindowRateLimiter
from interior_api.config import settings
from interior_api.main import _wire_services, app
from interior_api.services.uploads import LocalImageStorage, UploadService
from interior_api.storage.conversations import InMemoryConversationStore
from interior_api.storage.documents import InMemoryDocumentStore


@pytest.fixture(autouse=True)
def fresh_state(tmp_path):
    """Rebuild stores and services so tests never share conversations or documents."""
    app.state.hub.clear()
    app.state.rate_limiter = FixedWindowRateLimiter(
        settings.rate_limit_max_requests, settings.rate_limit_window_seconds
    )
    app.state.uploads = UploadService(LocalImageStorage(tmp_path / "uploads"), 10 * 1024 * 1024)
    _wire_services(
        app, InMemoryConversationStore(), InMemoryDocumentStore(), InMemoryDocumentStore()
    )
    yield
    app.state.hub.clear()


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
