"""Steam sign-in through OpenID 2.0.

Steam does not speak OAuth; it acts as an OpenID 2.0 provider whose claimed
identifiers embed the 64-bit Steam id.

## Flow

1. Redirect the user to the Steam login endpoint (`checkid_setup`)
2. Steam redirects back with a signed `id_res` assertion
3. Post the assertion back with `openid.mode=check_authentication`
4. Steam answers `is_valid:true`; extract the id from `openid.claimed_id`

## Endpoints

- Login: https://steamcommunity.com/openid/login
- Player summaries: https://api.steampowered.com/ISteamUser/GetPlayerSummaries/v0002/
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from hackathon_starter.auth.providers import ProviderError

logger = logging.getLogger(__name__)

STEAM_OPENID_URL = "https://steamcommunity.com/openid/login"
STEAM_PLAYER_SUMMARIES_URL = (
    "https://api.steampowered.com/ISteamUser/GetPlayerSummaries/v0002/"
)
OPENID_NS = "http://specs.openid.net/auth/2.0"
IDENTIFIER_SELECT = "http://specs.openid.net/auth/2.0/identifier_select"

CLAIMED_ID_PATTERN = re.compile(r"^https?://steamcommunity\.com/openid/id/(\d+)$")


class SteamOpenID:
    """Minimal OpenID 2.0 relying party for Steam."""

    def __init__(self, api_key: str | None, realm: str, return_to: str):
        self.api_key = api_key
        self.realm = realm
        self.return_to = return_to

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def get_authorization_url(self) -> str:
        """URL that starts the Steam login."""
        params = {
            "openid.ns": OPENID_NS,
            "openid.mode": "checkid_setup",
            "openid.return_to": self.return_to,
            "openid.realm": self.realm,
            "openid.identity": IDENTIFIER_SELECT,
            "openid.claimed_id": IDENTIFIER_SELECT,
        }
        return f"{STEAM_OPENID_URL}?{urlencode(params)}"

    async def verify(self, params: Mapping[str, str]) -> str:
        """Validate a callback assertion and return the Steam id.

        Raises:
            ProviderError: If the assertion is missing, forged, or malformed
        """
        if params.get("openid.mode") != "id_res":
            raise ProviderError("Steam sign-in was cancelled")

        if not str(params.get("openid.return_to", "")).startswith(self.return_to):
            raise ProviderError("Steam assertion was issued for another return URL")

        match = CLAIMED_ID_PATTERN.match(params.get("openid.claimed_id", ""))
        if match is None:
            raise ProviderError("Steam assertion has no valid claimed id")

        payload = {key: value for key, value in params.items() if key.startswith("openid.")}
        payload["openid.mode"] = "check_authentication"

        async with httpx.AsyncClient() as client:
            response = await client.post(STEAM_OPENID_URL, data=payload)

        if response.status_code != 200:
            logger.error(f"Steam verification failed: {response.status_code}")
            raise ProviderError(f"Steam verification failed: {response.status_code}")

        if "is_valid:true" not in response.text:
            raise ProviderError("Steam rejected the assertion")

        return match.group(1)

    async def get_player_summary(self, steam_id: str) -> dict[str, Any]:
        """Fetch the public profile for a Steam id."""
        if not self.is_configured:
            raise ProviderError("Steam API key not configured")

        async with httpx.AsyncClient() as client:
            response = await client.get(
                STEAM_PLAYER_SUMMARIES_URL,
                params={"key": self.api_key, "steamids": steam_id},
            )

        if response.status_code != 200:
            logger.error(f"Steam player summary failed: {response.text}")
            raise ProviderError(f"Steam player summary failed: {response.status_code}")

        players = response.json().get("response", {}).get("players", [])
        return players[0] if players else {}
