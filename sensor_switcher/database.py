"""
Database connection and session management.
Uses SQLAlchemy 2.0+ async style.

The engine lives on a Database handle that the application creates at
startup and stores on app.state, so tests and alternative backends can
supply their own.
"""

import os
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker
)

from sensor_switcher.models.database import Base


DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./resource/database.db"


def get_database_url() -> str:
    """Database URL from environment (PostgreSQL or SQLite)."""
    return os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _ensure_sqlite_directory(url: str) -> None:
    """SQLite can create the file but not its parent directory."""
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite" or not parsed.database or parsed.database == ":memory:":
        return
    directory = os.path.dirname(parsed.database)
    if directory:
        os.makedirs(directory, exist_ok=True)


class Database:
    """
    Owns the async engine and session factory for one database.
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[AsyncEngine] = None):
        """
        Args:
            url: SQLAlchemy async URL (ignored when engine is given)
            engine: Pre-built engine, e.g. an in-memory SQLite engine for tests
        """
        if engine is None:
            url = url or get_database_url()
            _ensure_sqlite_directory(url)
            engine = create_async_engine(
                url,
                echo=os.getenv("LOG_LEVEL", "INFO").upper() == "DEBUG",
                pool_pre_ping=True,
            )
        self.engine = engine

        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )

    async def init_schema(self) -> None:
        """Create all tables if they don't exist (idempotent)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose pooled connections. Call during application shutdown."""
        await self.engine.dispose()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints.
    Yields a session bound to the application's Database handle.

    Usage in FastAPI:
        @router.get("/endpoint")
        async def endpoint(db: AsyncSession = Depends(get_db)):
            # Use db here
    """
    database: Database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
