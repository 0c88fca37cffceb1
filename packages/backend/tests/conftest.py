"""Test fixtures: a fresh SQLite database per test and real JWT auth.

1. Each test gets its own SQLite file (aiosqlite) with the full schema
   created from the ORM metadata and foreign keys switched on.
2. get_db is overridden to hand out sessions bound to that file, one
   per request, exactly like production.
3. Auth is NOT mocked: helpers register users through the API and use
   the returned tokens, so ownership checks run for real.
4. Socket.IO emits are captured with an AsyncMock instead of going out.

Redis is never initialised (ASGITransport does not run the lifespan),
so rate limiting is skipped and the places cache is bypassed.
"""

import os
import uuid
from unittest.mock import AsyncMock, patch

# Settings are read at import time; point them at throwaway values first.
os.environ["TRAVEL_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["TRAVEL_BCRYPT_ROUNDS"] = "4"
os.environ["TRAVEL_ENVIRONMENT"] = "development"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from traveleasily.db.engine import get_db
from traveleasily.db.models import Base
from traveleasily.main import app
from traveleasily.realtime.socket import sio


@pytest_asyncio.fixture()
async def db_engine(tmp_path):
    """Per-test SQLite database with the schema created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'traveleasily.db'}",
        poolclass=NullPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Direct session for asserting on rows behind the API's back."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with get_db pointed at the per-test database."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def emitted():
    """Every Socket.IO emit made during the test, as an AsyncMock."""
    with patch.object(sio, "emit", new_callable=AsyncMock) as mock_emit:
        yield mock_emit


@pytest.fixture()
def emitted_events(emitted):
    """Names of the events emitted so far, in order."""
    return lambda: [c.args[0] for c in emitted.await_args_list]


# ─── API helpers ─────────────────────────────────────────


@pytest.fixture()
def register_user(client):
    """Register a user through the API; returns ids, tokens and auth headers."""
    async def _register(user_name: str = "Traveller", password: str = "password_123",
                        img_url: str = "https://img.example.com/avatar.png"):
        email = f"user-{uuid.uuid4().hex[:8]}@example.com"
        r = await client.post(
            "/api/v1/auth/register",
            json={
                "email": email,
                "password": password,
                "user_name": user_name,
                "img_url": img_url,
            },
        )
        assert r.status_code == 201, r.text
        data = r.json()
        return {
            "id": data["id"],
            "email": email,
            "password": password,
            "user_name": user_name,
            "access_token": data["access_token"],
            "refresh_token": data["refresh_token"],
            "headers": {"Authorization": f"Bearer {data['access_token']}"},
        }

    return _register


@pytest.fixture()
def create_trip(client):
    """Create a trip as `user` through the API; returns the response JSON."""
    async def _create(user: dict, **overrides):
        body = {
            "type_traveler": "Solo",
            "country": "Japan",
            "type_trip": "Backpacking",
            "trip_description": ["Tokyo", "Kyoto", "Osaka"],
            "trip_photos": ["https://img.example.com/tokyo.jpg"],
        }
        body.update(overrides)
        r = await client.post("/api/v1/trips", json=body, headers=user["headers"])
        assert r.status_code == 201, r.text
        return r.json()

    return _create
