"""
Pytest fixtures for testing.
Provides mock database sessions, an in-memory SQLite database and an HTTP
client bound to the FastAPI app.
"""

import pytest
import httpx
from unittest.mock import AsyncMock
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from sensor_switcher.database import Database
from sensor_switcher.devices.base import SimSensorSwitcher
from sensor_switcher.main import app


@pytest.fixture(autouse=True)
def secret_key(monkeypatch):
    """Every test signs tokens with the same throwaway key."""
    monkeypatch.setenv("SECRET_KEY", "test-secret-key")
    return "test-secret-key"


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session for testing.
    Use this when you need a database session but don't want real DB operations.
    """
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
async def database():
    """Fresh in-memory SQLite database with the schema created."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db = Database(engine=engine)
    await db.init_schema()
    yield db
    await db.close()


@pytest.fixture
async def db_session(database):
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def sim_switcher():
    return SimSensorSwitcher()


@pytest.fixture
async def client(database, sim_switcher):
    """HTTP client against the app, wired to the test database and sim switcher."""
    app.state.database = database
    app.state.sensor_switcher = sim_switcher

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture
def register(client):
    """Factory: create an account, log in, return auth headers plus the user id."""

    async def _register(username: str, email: str, password: str = "s3cret!") -> dict:
        created = await client.post(
            "/user/create-account",
            json={"username": username, "password": password, "email": email}
        )
        assert created.status_code == 201, created.text

        login = await client.post("/user/login", json={"username": username, "password": password})
        assert login.status_code == 200, login.text

        return {
            "user_id": created.json()["userId"],
            "headers": {"Authorization": f"Bearer {login.json()['token']}"}
        }

    return _register
