"""OAuth and OpenID flows for every provider in the provider table.

`ProviderRegistry` registers each configured provider with an `authlib`
Starlette client (OAuth 1.0a and 2.0) or with `SteamOpenID`, and exposes
the two halves of the flow:

- `authorize_redirect()` sends the user to the provider
- `complete()` validates the callback and returns a `ProviderIdentity`

State for the round trip is kept in `request.session` by authlib.

## Callback URLs

Each provider calls back to `{BASE_URL}/api/auth/<provider>/callback`;
register that URL with the provider.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any

import httpx
from authlib.integrations.starlette_client import OAuth, OAuthError
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from hackathon_starter.auth.api_client import ProviderApiClient, ProviderCredentials
from hackathon_starter.auth.providers import (
    PROVIDERS,
    Protocol,
    Provider,
    ProviderError,
    ProviderNotConfigured,
    lookup,
)
from hackathon_starter.auth.steam import SteamOpenID
from hackathon_starter.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass
class ProviderIdentity:
    """Who the provider says the user is, plus the tokens it issued."""

    provider: str
    provider_user_id: str
    access_token: str
    email: str | None = None
    name: str | None = None
    picture: str | None = None
    token_secret: str | None = None
    refresh_token: str | None = None
    token_type: str = "Bearer"
    scope: str | None = None
    expires_at: datetime | None = None


class ProviderRegistry:
    """Registered OAuth clients keyed by provider name."""

    def __init__(
        self,
        settings: Settings,
        providers: tuple[Provider, ...] = PROVIDERS,
        api_client: ProviderApiClient | None = None,
    ):
        self.settings = settings
        self.providers = {p.name: p for p in providers}
        self.api_client = api_client or ProviderApiClient(settings)
        self.oauth = OAuth()
        self.steam = SteamOpenID(
            api_key=settings.steam_key,
            realm=settings.base_url,
            return_to=self.callback_url("steam"),
        )
        self._configured: set[str] = set()

        for provider in providers:
            if provider.protocol is Protocol.OPENID:
                if self.steam.is_configured:
                    self._configured.add(provider.name)
                continue

            client_id, client_secret = settings.provider_credentials(provider.name)
            if not client_id or not client_secret:
                logger.debug(f"{provider.name} OAuth not configured")
                continue

            client_kwargs: dict[str, Any] = {}
            if provider.scope:
                client_kwargs["scope"] = provider.scope

            endpoints = {
                "request_token_url": provider.request_token_url,
                "authorize_url": provider.authorize_url,
                "access_token_url": provider.access_token_url,
                "api_base_url": provider.api_base_url,
            }
            self.oauth.register(
                name=provider.name,
                client_id=client_id,
                client_secret=client_secret,
                client_kwargs=client_kwargs,
                **{key: url for key, url in endpoints.items() if url},
            )
            self._configured.add(provider.name)

    def get(self, name: str) -> Provider:
        try:
            return self.providers[name]
        except KeyError:
            raise ProviderNotConfigured(f"Unknown provider: {name}") from None

    def is_configured(self, name: str) -> bool:
        return name in self._configured

    def callback_url(self, name: str) -> str:
        base = self.settings.base_url.rstrip("/")
        return f"{base}{self.settings.auth_path_prefix}/{name}/callback"

    async def authorize_redirect(self, request: Request, name: str) -> Response:
        """Start the flow for a provider.

        Raises:
            ProviderNotConfigured: If the provider has no credentials
            ProviderError: If the provider cannot be reached
        """
        provider = self.get(name)
        if not self.is_configured(name):
            raise ProviderNotConfigured(f"{name} sign-in is not configured")

        if provider.protocol is Protocol.OPENID:
            return RedirectResponse(self.steam.get_authorization_url(), status_code=302)

        client = self.oauth.create_client(name)
        try:
            return await client.authorize_redirect(request, self.callback_url(name))
        except (OAuthError, httpx.HTTPError) as e:
            logger.error(f"{name} authorization request failed: {e}")
            raise ProviderError(f"Could not reach {name}") from e

    async def complete(self, request: Request, name: str) -> ProviderIdentity:
        """Finish the flow and identify the user.

        Raises:
            ProviderNotConfigured: If the provider has no credentials
            ProviderError: If the provider denied access or returned bad data
        """
        provider = self.get(name)
        if not self.is_configured(name):
            raise ProviderNotConfigured(f"{name} sign-in is not configured")

        if provider.protocol is Protocol.OPENID:
            steam_id = await self.steam.verify(request.query_params)
            return ProviderIdentity(
                provider=name,
                provider_user_id=steam_id,
                access_token=steam_id,
                token_type="OpenID",
            )

        client = self.oauth.create_client(name)
        try:
            token = await client.authorize_access_token(request)
        except (OAuthError, httpx.HTTPError) as e:
            logger.warning(f"{name} token exchange failed: {e}")
            raise ProviderError(f"{name} authorization failed") from e

        return await self._identify(provider, dict(token))

    async def _identify(self, provider: Provider, token: dict[str, Any]) -> ProviderIdentity:
        if provider.protocol is Protocol.OAUTH1:
            credentials = ProviderCredentials(
                access_token=token["oauth_token"],
                token_secret=token.get("oauth_token_secret"),
            )
        else:
            credentials = ProviderCredentials(access_token=token["access_token"])

        profile = await self.api_client.fetch_profile(provider, credentials)
        fields = provider.profile_fields

        provider_user_id = lookup(profile, fields.id)
        if provider_user_id is None:
            raise ProviderError(f"{provider.name} profile has no id")

        expires_at = None
        if token.get("expires_at"):
            expires_at = datetime.fromtimestamp(int(token["expires_at"]), tz=timezone.utc)

        return ProviderIdentity(
            provider=provider.name,
            provider_user_id=str(provider_user_id),
            access_token=credentials.access_token,
            token_secret=credentials.token_secret,
            refresh_token=token.get("refresh_token"),
            token_type=token.get("token_type", "Bearer"),
            scope=token.get("scope"),
            expires_at=expires_at,
            email=lookup(profile, fields.email),
            name=lookup(profile, fields.name),
            picture=lookup(profile, fields.picture),
        )


@lru_cache
def get_provider_registry() -> ProviderRegistry:
    """Get the cached provider registry (FastAPI dependency)."""
    return ProviderRegistry(get_settings())
