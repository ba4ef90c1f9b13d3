"""Tests for route gates and the route table."""

import asyncio
from types import SimpleNamespace

import pytest

from hackathon_starter.api.routes import API_ROUTES, AUTH_ROUTES, ROUTES
from hackathon_starter.auth.gates import (
    GateRedirect,
    authorize_path,
    is_authenticated,
    is_authorized,
)
from hackathon_starter.auth.providers import PROVIDERS


def fake_request(user=None):
    return SimpleNamespace(state=SimpleNamespace(user=user), url=SimpleNamespace(path="/x"))


class FakeUser:
    def __init__(self, *providers):
        self.providers = set(providers)

    def has_token(self, provider):
        return provider in self.providers


class TestIsAuthenticated:
    def test_passes_with_user(self):
        user = FakeUser()
        assert asyncio.run(is_authenticated(fake_request(user))) is user

    def test_redirects_to_login(self):
        with pytest.raises(GateRedirect) as exc_info:
            asyncio.run(is_authenticated(fake_request()))
        assert exc_info.value.location == "/api/login"


class TestIsAuthorized:
    def test_passes_with_token(self):
        gate = is_authorized("github")
        assert asyncio.run(gate(fake_request(FakeUser("github")))) is None

    def test_redirects_without_token(self):
        gate = is_authorized("github")
        with pytest.raises(GateRedirect) as exc_info:
            asyncio.run(gate(fake_request(FakeUser("twitter"))))
        assert exc_info.value.location == "/api/auth/github"

    def test_redirects_without_user(self):
        gate = is_authorized("tumblr")
        with pytest.raises(GateRedirect) as exc_info:
            asyncio.run(gate(fake_request()))
        assert exc_info.value.location == authorize_path("tumblr")


class TestRouteTable:
    def test_routes_are_unique(self):
        keys = [(r.method, r.path) for r in ROUTES]
        assert len(keys) == len(set(keys))

    def test_auth_routes_cover_every_provider(self):
        paths = {r.path for r in AUTH_ROUTES}
        for provider in PROVIDERS:
            assert f"/api/auth/{provider.name}" in paths
            assert f"/api/auth/{provider.name}/callback" in paths

    @pytest.mark.parametrize(
        "path,provider",
        [
            ("/api/api/steam", "steam"),
            ("/api/api/foursquare", "foursquare"),
            ("/api/api/tumblr", "tumblr"),
            ("/api/api/facebook", "facebook"),
            ("/api/api/github", "github"),
            ("/api/api/twitter", "twitter"),
            ("/api/api/linkedin", "linkedin"),
            ("/api/api/instagram", "instagram"),
            ("/api/api/pinterest", "pinterest"),
        ],
    )
    def test_provider_demos_are_gated(self, path, provider):
        entries = [r for r in API_ROUTES if r.path == path]
        assert entries
        for entry in entries:
            assert entry.gates[0] is is_authenticated
            assert entry.gates[1].__name__ == f"is_authorized_{provider}"

    def test_keyed_demos_are_open(self):
        for path in ("/api/api/lastfm", "/api/api/stripe", "/api/api/upload"):
            assert all(not r.gates for r in API_ROUTES if r.path == path)

    def test_account_routes_need_login(self):
        account = [r for r in ROUTES if r.path.startswith("/api/account")]
        assert len(account) == 5
        assert all(r.gates == (is_authenticated,) for r in account)


class TestGatesThroughApp:
    def test_account_redirects_when_signed_out(self, client):
        response = client.get("/api/account")
        assert response.status_code == 302
        assert response.headers["location"] == "/api/login"

    def test_demo_redirects_to_login_when_signed_out(self, client):
        response = client.get("/api/api/github")
        assert response.status_code == 302
        assert response.headers["location"] == "/api/login"

    def test_demo_redirects_to_authorize_without_token(self, signed_in_client):
        response = signed_in_client.get("/api/api/github")
        assert response.status_code == 302
        assert response.headers["location"] == "/api/auth/github"

    def test_gated_post_redirects(self, signed_in_client):
        from conftest import csrf_token

        token = csrf_token(signed_in_client, "/api/api")
        response = signed_in_client.post(
            "/api/api/twitter", data={"tweet": "hello", "_csrf": token}
        )
        assert response.status_code == 302
        assert response.headers["location"] == "/api/auth/twitter"

    def test_open_demo_renders(self, client):
        response = client.get("/api/api/lastfm")
        assert response.status_code == 200
        body = response.json()
        assert body["page"] == "api/lastfm"
        assert body["configured"] is False
