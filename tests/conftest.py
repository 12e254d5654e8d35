"""
Pytest configuration and fixtures for tests.
Provides reusable fixtures for the database, store, users, and HTTP client.
"""
import os

# Settings are read at import time; configure the test environment first
os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["REDIS_URL"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from profinder.core.pubsub import ChangeBroker
from profinder.core.security import create_access_token
from profinder.models.base import Base
from profinder.repositories.relationship_store import RelationshipStore
from profinder.schemas.auth import ActorContext


@pytest.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a test database engine on a per-test SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'profinder_test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest.fixture
def broker() -> ChangeBroker:
    """In-process change broker, isolated per test."""
    return ChangeBroker()


@pytest.fixture
def store(session_factory, broker) -> RelationshipStore:
    """Relationship store over the test database."""
    return RelationshipStore(session_factory, broker)


async def _make_user(store: RelationshipStore, user_id: str, **fields):
    defaults = {
        "name": user_id.capitalize(),
        "email": f"{user_id}@example.com",
        "area": "Software",
        "profession": "Engineer",
        "location": "Berlin",
    }
    defaults.update(fields)
    return await store.create_user(user_id, **defaults)


@pytest.fixture
def make_user(store):
    """Factory fixture creating users in the test store."""
    async def factory(user_id: str, **fields):
        return await _make_user(store, user_id, **fields)
    return factory


@pytest.fixture
async def alice(store):
    """Create test user alice."""
    return await _make_user(store, "alice", name="Alice", profession="Designer")


@pytest.fixture
async def bob(store):
    """Create test user bob."""
    return await _make_user(store, "bob", name="Bob")


@pytest.fixture
def alice_actor() -> ActorContext:
    return ActorContext(user_id="alice")


@pytest.fixture
def bob_actor() -> ActorContext:
    return ActorContext(user_id="bob")


@pytest.fixture
async def connected(store, alice, bob):
    """Make alice and bob mutual connections."""
    await store.update_user("alice", add={"connections": ["bob"]})
    await store.update_user("bob", add={"connections": ["alice"]})


def auth_headers_for(user_id: str, role: str = None) -> dict:
    """Bearer headers for a real signed token."""
    data = {"sub": user_id}
    if role:
        data["role"] = role
    return {"Authorization": f"Bearer {create_access_token(data=data)}"}


@pytest.fixture
def auth_headers():
    """Factory returning auth headers for a user ID."""
    return auth_headers_for


@pytest.fixture(scope="function")
async def client(store) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client bound to the test store."""
    from profinder.dependencies import get_store
    from profinder.main import fastapi_app

    fastapi_app.dependency_overrides[get_store] = lambda: store

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()
