"""Pytest fixtures for hackathon starter tests.

This module provides test fixtures that ensure:
1. No external API calls are made (OAuth providers, Steam)
2. Every app test runs against a fresh in-memory SQLite database
3. Isolated test environment with controlled configuration
"""

import os
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

# Set test environment BEFORE importing application modules
# This ensures no real services are contacted during test collection
os.environ.setdefault("SESSION_SECRET", "test-session-secret-at-least-32-characters")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("DATABASE_CREATE_TABLES", "true")
os.environ.setdefault("SESSION_STORE", "memory")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

from hackathon_starter.auth.oauth import ProviderIdentity, get_provider_registry
from hackathon_starter.auth.providers import PROVIDERS_BY_NAME, ProviderError


# =============================================================================
# Test Isolation Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_caches():
    """Reset cached settings, cipher and provider registry before each test."""
    from hackathon_starter.config import get_settings
    from hackathon_starter.database.encryption import reset_cipher

    get_settings.cache_clear()
    get_provider_registry.cache_clear()
    reset_cipher()
    yield
    get_settings.cache_clear()
    get_provider_registry.cache_clear()
    reset_cipher()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point uploads at a temporary directory."""
    target = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(target))
    return target


@pytest.fixture
def app():
    from hackathon_starter.api import create_app

    return create_app()


@pytest.fixture
def client(app):
    """Test client with lifespan (database set up) and manual redirects."""
    with TestClient(app, follow_redirects=False) as test_client:
        yield test_client


# =============================================================================
# Provider Fakes
# =============================================================================


class FakeRegistry:
    """Stands in for `ProviderRegistry`; hands out pre-set identities."""

    def __init__(self):
        self.identities: dict[str, ProviderIdentity] = {}
        self.errors: dict[str, ProviderError] = {}
        self.api_client = AsyncMock()
        self.api_client.fetch_profile = AsyncMock(return_value={"id": "profile-id"})
        self.steam = AsyncMock()

    def get(self, name):
        return PROVIDERS_BY_NAME[name]

    def is_configured(self, name):
        return name in self.identities

    async def authorize_redirect(self, request, name):
        from starlette.responses import RedirectResponse

        return RedirectResponse(f"https://{name}.example.com/authorize", status_code=302)

    async def complete(self, request, name):
        if name in self.errors:
            raise self.errors[name]
        return self.identities[name]


@pytest.fixture
def fake_registry(app):
    """Replace the provider registry dependency with a `FakeRegistry`."""
    registry = FakeRegistry()
    app.dependency_overrides[get_provider_registry] = lambda: registry
    yield registry
    app.dependency_overrides.clear()


# =============================================================================
# Helpers
# =============================================================================


def csrf_token(client: TestClient, path: str = "/api/login") -> str:
    """Fetch a page and return the session's CSRF token."""
    response = client.get(path)
    assert response.status_code == 200
    return response.json()["csrf_token"]


def sign_up(client: TestClient, email: str = "user@example.com", password: str = "secret123"):
    """Create a local account; the client ends up signed in."""
    token = csrf_token(client, "/api/signup")
    response = client.post(
        "/api/signup",
        data={
            "email": email,
            "password": password,
            "confirmPassword": password,
            "_csrf": token,
        },
    )
    assert response.status_code == 302
    return response


def log_in(client: TestClient, email: str = "user@example.com", password: str = "secret123"):
    token = csrf_token(client, "/api/login")
    return client.post(
        "/api/login",
        data={"email": email, "password": password, "_csrf": token},
    )


@pytest.fixture
def signed_in_client(client):
    sign_up(client)
    return client


@pytest.fixture
def github_identity() -> ProviderIdentity:
    return ProviderIdentity(
        provider="github",
        provider_user_id="583231",
        access_token="gho_test_token",
        email="octocat@example.com",
        name="The Octocat",
        picture="https://avatars.example.com/583231",
    )


@pytest.fixture
def foursquare_identity() -> ProviderIdentity:
    return ProviderIdentity(
        provider="foursquare",
        provider_user_id="1234",
        access_token="fsq_test_token",
    )
