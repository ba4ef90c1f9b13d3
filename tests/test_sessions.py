"""Tests for session cookies and session stores."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from conftest import csrf_token

from hackathon_starter.auth.session import (
    create_session_token,
    new_session_id,
    verify_session_token,
)
from hackathon_starter.middleware.sessions import (
    DatabaseSessionStore,
    MemorySessionStore,
    Session,
    create_session_store,
    purge_expired_sessions,
)


def in_future(seconds: int = 3600) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=seconds)


def in_past(seconds: int = 3600) -> datetime:
    return datetime.now(timezone.utc) - timedelta(seconds=seconds)


class TestSessionToken:
    def test_round_trip(self):
        sid = new_session_id()
        token = verify_session_token(create_session_token(sid))
        assert token is not None
        assert token.session_id == sid
        assert not token.is_expired

    def test_wrong_secret_rejected(self):
        from jose import jwt

        forged = jwt.encode(
            {"sid": "x", "iat": 0, "exp": 9999999999, "type": "session"},
            "some-other-secret-that-is-long-enough",
            algorithm="HS256",
        )
        assert verify_session_token(forged) is None

    def test_expired_token_rejected(self):
        cookie = create_session_token(new_session_id(), timedelta(seconds=-10))
        assert verify_session_token(cookie) is None

    def test_foreign_jwt_rejected(self):
        from jose import jwt

        from hackathon_starter.config import get_settings

        forged = jwt.encode(
            {"sid": "x", "iat": 0, "exp": 9999999999, "type": "access"},
            get_settings().session_secret,
            algorithm="HS256",
        )
        assert verify_session_token(forged) is None

    def test_session_ids_are_unique(self):
        assert len({new_session_id() for _ in range(50)}) == 50


class TestSession:
    def test_destroy_clears_data(self):
        session = Session("abc", {"user_id": "1"})
        session.destroy()
        assert session == {}
        assert session.destroyed


class TestMemorySessionStore:
    def test_save_and_load(self):
        store = MemorySessionStore()

        async def run():
            await store.save("a", {"returnTo": "/api/account"}, in_future())
            return await store.load("a")

        assert asyncio.run(run()) == {"returnTo": "/api/account"}

    def test_load_returns_copy(self):
        store = MemorySessionStore()

        async def run():
            await store.save("a", {"flash": {}}, in_future())
            loaded = await store.load("a")
            loaded["flash"]["errors"] = ["x"]
            return await store.load("a")

        assert asyncio.run(run()) == {"flash": {}}

    def test_expired_not_loaded(self):
        store = MemorySessionStore()

        async def run():
            await store.save("a", {"k": 1}, in_past())
            return await store.load("a")

        assert asyncio.run(run()) is None

    def test_clear_expired(self):
        store = MemorySessionStore()

        async def run():
            await store.save("old", {}, in_past())
            await store.save("live", {}, in_future())
            return await store.clear_expired()

        assert asyncio.run(run()) == 1
        assert len(store) == 1

    def test_delete(self):
        store = MemorySessionStore()

        async def run():
            await store.save("a", {}, in_future())
            await store.delete("a")
            await store.delete("missing")
            return await store.load("a")

        assert asyncio.run(run()) is None


class TestDatabaseSessionStore:
    @pytest.fixture
    def database(self):
        from hackathon_starter.database.connection import close_db, create_tables, init_db

        def run(coro_fn):
            async def wrapper():
                await init_db()
                await create_tables()
                try:
                    return await coro_fn()
                finally:
                    await close_db()

            return asyncio.run(wrapper())

        return run

    def test_save_load_update(self, database):
        store = DatabaseSessionStore()

        async def scenario():
            await store.save("sid", {"user_id": "1"}, in_future())
            await store.save("sid", {"user_id": "2"}, in_future())
            return await store.load("sid")

        assert database(scenario) == {"user_id": "2"}

    def test_expired_and_purge(self, database):
        store = DatabaseSessionStore()

        async def scenario():
            await store.save("old", {}, in_past())
            await store.save("live", {"a": 1}, in_future())
            expired = await store.load("old")
            removed = await store.clear_expired()
            return expired, removed, await store.load("live")

        expired, removed, live = database(scenario)
        assert expired is None
        assert removed == 1
        assert live == {"a": 1}

    def test_delete(self, database):
        store = DatabaseSessionStore()

        async def scenario():
            await store.save("sid", {}, in_future())
            await store.delete("sid")
            return await store.load("sid")

        assert database(scenario) is None


class TestStoreSelection:
    def test_memory(self, monkeypatch):
        from hackathon_starter.config import Settings

        monkeypatch.setenv("SESSION_STORE", "memory")
        assert isinstance(create_session_store(Settings()), MemorySessionStore)

    def test_database(self, monkeypatch):
        from hackathon_starter.config import Settings

        monkeypatch.setenv("SESSION_STORE", "database")
        assert isinstance(create_session_store(Settings()), DatabaseSessionStore)


class TestPurgeLoop:
    def test_purges_until_cancelled(self):
        store = MemorySessionStore()

        async def run():
            await store.save("old", {}, in_past())
            task = asyncio.create_task(purge_expired_sessions(store, interval_seconds=0))
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(run())
        assert len(store) == 0


class TestSessionCookie:
    def test_cookie_reissued_for_same_session(self, client):
        first = verify_session_token(client.get("/").cookies["hackathon_session"])
        second = verify_session_token(client.get("/").cookies["hackathon_session"])
        assert first is not None and second is not None
        assert second.session_id == first.session_id

    def test_cookie_expiry_rolls_forward(self, client):
        token = csrf_token(client)
        sid = verify_session_token(client.cookies["hackathon_session"]).session_id

        # Cookie close to its expiry while the stored record is still live.
        client.cookies.clear()
        client.cookies.set("hackathon_session", create_session_token(sid, timedelta(seconds=5)))
        response = client.get("/api/login")

        assert response.json()["csrf_token"] == token
        renewed = verify_session_token(response.cookies["hackathon_session"])
        assert renewed.session_id == sid
        assert renewed.expires_at > in_future(60 * 60 * 24)

    def test_session_persists_between_requests(self, client, app):
        client.get("/api/contact")
        client.get("/")
        assert len(app.state.session_store) == 1

    def test_bad_cookie_starts_new_session(self, client):
        client.cookies.set("hackathon_session", "garbage")
        response = client.get("/")
        assert "hackathon_session" in response.cookies
