"""Database connection management.

Provides async database connection using SQLAlchemy.

## Configuration

Database connection is configured via environment variables:
- DATABASE_URL (or MONGODB_URI / MONGOLAB_URI): connection string
- DATABASE_POOL_SIZE: Connection pool size (default: 5)
- DATABASE_MAX_OVERFLOW: Max overflow connections (default: 10)

SQLite URLs (`sqlite+aiosqlite://`) are accepted for local development and
tests; pool sizing options are ignored for them.

## Usage

```python
from hackathon_starter.database import get_db, init_db, verify_connection

# Initialize on startup
await init_db()
await verify_connection()

# Use in request handlers
async with get_db() as session:
    user = await session.get(User, user_id)
```
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hackathon_starter.config import get_settings
from hackathon_starter.database.models import Base

logger = logging.getLogger(__name__)

# Global engine and session factory
_engine = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


class DatabaseConnectionError(RuntimeError):
    """Raised when the startup connection check fails."""


async def init_db() -> None:
    """Initialize the database connection.

    Creates the async engine and session factory. Should be called
    once on application startup.
    """
    global _engine, _session_factory

    settings = get_settings()

    logger.info("Initializing database connection")

    engine_options = {
        "pool_pre_ping": True,  # Verify connections before use
        "echo": settings.database_echo,  # Log SQL in debug mode
    }
    if settings.is_sqlite and ":memory:" in settings.database_url:
        # One shared connection, otherwise every checkout sees an empty database
        engine_options["poolclass"] = StaticPool
        engine_options["connect_args"] = {"check_same_thread": False}
    elif not settings.is_sqlite:
        engine_options["pool_size"] = settings.database_pool_size
        engine_options["max_overflow"] = settings.database_max_overflow

    _engine = create_async_engine(settings.database_url, **engine_options)

    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    logger.info("Database connection initialized")


async def verify_connection() -> None:
    """Run a round trip against the database.

    Raises:
        DatabaseConnectionError: If the database cannot be reached
    """
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        raise DatabaseConnectionError(str(e)) from e


async def close_db() -> None:
    """Dispose of the engine on shutdown."""
    global _engine, _session_factory

    if _engine is None:
        return
    logger.info("Closing database connection")
    await _engine.dispose()
    _engine, _session_factory = None, None


async def create_tables() -> None:
    """Create the users, oauth_tokens and sessions tables if missing."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Open a session for code running outside a route handler.

    Middleware (session store, principal loading) uses this directly.
    Nothing is committed implicitly; an exception rolls the session back.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")

    async with _session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Route dependency yielding a session scoped to one request."""
    async with get_db() as session:
        yield session
