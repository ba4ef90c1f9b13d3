"""Authenticated calls to provider APIs on behalf of a user.

OAuth 2.0 providers take the access token as a bearer header or a query
parameter (`Provider.token_placement`). OAuth 1.0a providers need every
request signed with the consumer and token secrets, which
`authlib`'s `AsyncOAuth1Client` does for us.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from authlib.integrations.httpx_client import AsyncOAuth1Client
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from hackathon_starter.auth.providers import Protocol, Provider, ProviderError
from hackathon_starter.config import Settings
from hackathon_starter.database.encryption import decrypt_token
from hackathon_starter.database.models import OAuthToken

logger = logging.getLogger(__name__)


@dataclass
class ProviderCredentials:
    """Decrypted tokens for one linked provider."""

    access_token: str
    token_secret: str | None = None

    @classmethod
    def from_token(cls, token: OAuthToken) -> "ProviderCredentials":
        return cls(
            access_token=decrypt_token(token.access_token_encrypted) or "",
            token_secret=decrypt_token(token.token_secret_encrypted),
        )


class ProviderApiClient:
    """Small HTTP client for provider APIs.

    Reads (GET) are retried on timeouts and network errors; writes are sent
    once so a post is never duplicated.
    """

    timeout = 15.0

    def __init__(self, settings: Settings):
        self.settings = settings

    async def _send(
        self,
        provider: Provider,
        credentials: ProviderCredentials,
        method: str,
        url: str,
        params: dict[str, Any],
        data: dict[str, Any] | None,
    ) -> httpx.Response:
        if provider.protocol is Protocol.OAUTH1:
            client_id, client_secret = self.settings.provider_credentials(provider.name)
            async with AsyncOAuth1Client(
                client_id,
                client_secret,
                token=credentials.access_token,
                token_secret=credentials.token_secret,
                timeout=self.timeout,
            ) as client:
                return await client.request(method, url, params=params, data=data)

        params = dict(params)
        headers = {}
        if provider.token_placement == "header":
            headers["Authorization"] = f"Bearer {credentials.access_token}"
        elif provider.token_placement == "uri":
            params["access_token"] = credentials.access_token
        else:
            params[provider.token_placement] = credentials.access_token

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, params=params, data=data, headers=headers)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.NetworkError)),
        reraise=True,
    )
    async def _send_with_retry(self, *args) -> httpx.Response:
        return await self._send(*args)

    async def request(
        self,
        provider: Provider,
        credentials: ProviderCredentials,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            ProviderError: On transport errors or non-2xx responses
        """
        send = self._send_with_retry if method.upper() == "GET" else self._send
        try:
            response = await send(provider, credentials, method, url, dict(params or {}), data)
        except httpx.HTTPError as e:
            logger.error(f"{provider.name} request to {url} failed: {e}")
            raise ProviderError(f"{provider.name} request failed") from e

        if response.status_code >= 400:
            logger.error(f"{provider.name} API error {response.status_code}: {response.text}")
            raise ProviderError(f"{provider.name} API error: {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"{provider.name} returned a non-JSON body from {url}: {e}")
            raise ProviderError(f"{provider.name} returned an unreadable response") from e

    async def fetch_profile(
        self, provider: Provider, credentials: ProviderCredentials
    ) -> dict[str, Any]:
        """Fetch the provider's profile document for the token's owner."""
        if not provider.profile_url:
            raise ProviderError(f"{provider.name} has no profile endpoint")
        return await self.request(
            provider, credentials, "GET", provider.profile_url, params=provider.profile_params
        )
