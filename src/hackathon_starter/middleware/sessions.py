"""Server-side sessions.

Each client holds a signed cookie naming a session id; the session payload
is kept in a shared store. The middleware exposes the payload as
`request.session` (a `Session` dict), the same place Starlette and authlib
expect to find it.

## Lifecycle

- Created on the first request from a client and saved even if untouched
- Re-saved after every request, extending its expiry by the TTL; the
  cookie is reissued with the same expiry
- Destroyed on logout (`session.destroy()`) or when the TTL lapses
- Expired records are purged by `purge_expired_sessions()`

## Stores

- `DatabaseSessionStore`: `sessions` table through SQLAlchemy (default)
- `MemorySessionStore`: process-local dict, for development and tests
"""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import delete
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from hackathon_starter.auth.session import (
    create_session_token,
    new_session_id,
    verify_session_token,
)
from hackathon_starter.config import Settings
from hackathon_starter.database.connection import get_db
from hackathon_starter.database.models import SessionRecord, ensure_utc

logger = logging.getLogger(__name__)


class Session(dict):
    """Per-request view of a stored session."""

    def __init__(self, session_id: str, data: dict[str, Any] | None = None):
        super().__init__(data or {})
        self.session_id = session_id
        self.destroyed = False

    def destroy(self) -> None:
        """Drop all data and remove the record once the response is sent."""
        self.clear()
        self.destroyed = True


class SessionStore(ABC):
    """Storage backend for session payloads."""

    @abstractmethod
    async def load(self, session_id: str) -> dict[str, Any] | None:
        """Return the payload for a live session, or None."""

    @abstractmethod
    async def save(self, session_id: str, data: dict[str, Any], expires_at: datetime) -> None:
        """Insert or replace a session payload."""

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        """Remove a session."""

    @abstractmethod
    async def clear_expired(self) -> int:
        """Remove expired sessions and return how many were dropped."""


class MemorySessionStore(SessionStore):
    """Process-local store. Not shared across workers."""

    def __init__(self) -> None:
        self._records: dict[str, tuple[dict[str, Any], datetime]] = {}
        self._lock = asyncio.Lock()

    async def load(self, session_id: str) -> dict[str, Any] | None:
        record = self._records.get(session_id)
        if record is None:
            return None
        data, expires_at = record
        if expires_at <= datetime.now(timezone.utc):
            return None
        return copy.deepcopy(data)

    async def save(self, session_id: str, data: dict[str, Any], expires_at: datetime) -> None:
        async with self._lock:
            self._records[session_id] = (copy.deepcopy(data), expires_at)

    async def delete(self, session_id: str) -> None:
        async with self._lock:
            self._records.pop(session_id, None)

    async def clear_expired(self) -> int:
        now = datetime.now(timezone.utc)
        async with self._lock:
            expired = [sid for sid, (_, exp) in self._records.items() if exp <= now]
            for sid in expired:
                del self._records[sid]
        return len(expired)

    def __len__(self) -> int:
        return len(self._records)


class DatabaseSessionStore(SessionStore):
    """Store sessions in the `sessions` table."""

    async def load(self, session_id: str) -> dict[str, Any] | None:
        async with get_db() as db:
            record = await db.get(SessionRecord, session_id)
            if record is None:
                return None
            if ensure_utc(record.expires_at) <= datetime.now(timezone.utc):
                return None
            return dict(record.data or {})

    async def save(self, session_id: str, data: dict[str, Any], expires_at: datetime) -> None:
        async with get_db() as db:
            record = await db.get(SessionRecord, session_id)
            if record is None:
                db.add(SessionRecord(id=session_id, data=data, expires_at=expires_at))
            else:
                record.data = data
                record.expires_at = expires_at
            await db.commit()

    async def delete(self, session_id: str) -> None:
        async with get_db() as db:
            await db.execute(delete(SessionRecord).where(SessionRecord.id == session_id))
            await db.commit()

    async def clear_expired(self) -> int:
        async with get_db() as db:
            result = await db.execute(
                delete(SessionRecord).where(
                    SessionRecord.expires_at <= datetime.now(timezone.utc)
                )
            )
            await db.commit()
        return result.rowcount or 0


def create_session_store(settings: Settings) -> SessionStore:
    """Build the store selected by SESSION_STORE."""
    if settings.session_store == "memory":
        return MemorySessionStore()
    return DatabaseSessionStore()


async def purge_expired_sessions(store: SessionStore, interval_seconds: int) -> None:
    """Periodically remove expired sessions. Runs until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = await store.clear_expired()
        except Exception:
            logger.exception("Failed to clear expired sessions")
            continue
        if removed:
            logger.info(f"Cleared {removed} expired sessions")


class SessionMiddleware(BaseHTTPMiddleware):
    """Attach a server-side session to every request."""

    def __init__(self, app, store: SessionStore, settings: Settings):
        super().__init__(app)
        self.store = store
        self.settings = settings

    async def _load_session(self, request: Request) -> Session:
        cookie = request.cookies.get(self.settings.session_cookie_name)
        if cookie:
            token = verify_session_token(cookie)
            if token is not None:
                data = await self.store.load(token.session_id)
                if data is not None:
                    return Session(token.session_id, data)
        return Session(new_session_id())

    async def dispatch(self, request: Request, call_next) -> Response:
        session = await self._load_session(request)
        request.scope["session"] = session

        response = await call_next(request)

        if session.destroyed:
            await self.store.delete(session.session_id)
            response.delete_cookie(
                self.settings.session_cookie_name,
                httponly=True,
                secure=self.settings.is_production,
                samesite="lax",
            )
            return response

        ttl = timedelta(seconds=self.settings.session_ttl_seconds)
        await self.store.save(
            session.session_id, dict(session), datetime.now(timezone.utc) + ttl
        )

        # The cookie expiry rolls with the store record.
        response.set_cookie(
            key=self.settings.session_cookie_name,
            value=create_session_token(session.session_id, ttl),
            max_age=self.settings.session_ttl_seconds,
            httponly=True,
            secure=self.settings.is_production,
            samesite="lax",
        )

        return response
