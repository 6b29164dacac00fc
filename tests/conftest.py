"""Shared fixtures: an in-memory database, the persistence service on top of it, and a seeded hierarchy."""

import pytest
import httpx

from personaflow.core import database
from personaflow.services.hierarchy_store import HierarchyStore
from personaflow.services.persistence import PersistenceService

IN_MEMORY_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def session_factory():
    await database.init_db(IN_MEMORY_URL)
    yield await database.get_session_factory()
    await database.dispose_db()


@pytest.fixture
async def persistence(session_factory):
    return PersistenceService(session_factory)


@pytest.fixture
async def store(persistence):
    store = HierarchyStore(persistence)
    await store.load_all()
    return store


@pytest.fixture
async def client(persistence):
    from personaflow.api.v1.deps import get_persistence
    from personaflow.main import app

    app.dependency_overrides[get_persistence] = lambda: persistence
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
    app.dependency_overrides.clear()
