"""Provider table.

Every third-party integration is described once here. The OAuth registry
and the auth routes are generated from this table, so adding a provider
means adding a row.

## Modes

- `SIGN_IN`: the provider can create and log into accounts
- `AUTHORIZE`: the provider only links an API token to the current account

## Success redirect

`success_redirect=None` sends the user to their recorded return target
(`session["returnTo"]`, default `/`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Protocol(str, Enum):
    OAUTH1 = "oauth1"
    OAUTH2 = "oauth2"
    OPENID = "openid"


class Mode(str, Enum):
    SIGN_IN = "sign_in"
    AUTHORIZE = "authorize"


@dataclass(frozen=True)
class ProfileFields:
    """Where to find identity fields in a provider's profile document."""

    id: str = "id"
    email: str | None = "email"
    name: str | None = "name"
    picture: str | None = None


@dataclass(frozen=True)
class Provider:
    """One OAuth / OpenID integration."""

    name: str
    protocol: Protocol
    mode: Mode
    failure_redirect: str
    success_redirect: str | None = None
    scope: str | None = None
    authorize_url: str | None = None
    access_token_url: str | None = None
    request_token_url: str | None = None
    api_base_url: str | None = None
    profile_url: str | None = None
    profile_params: dict[str, str] = field(default_factory=dict)
    profile_fields: ProfileFields = field(default_factory=ProfileFields)
    token_placement: str = "header"

    @property
    def is_sign_in(self) -> bool:
        return self.mode is Mode.SIGN_IN


PROVIDERS: tuple[Provider, ...] = (
    # Sign in
    Provider(
        name="instagram",
        protocol=Protocol.OAUTH2,
        mode=Mode.SIGN_IN,
        failure_redirect="/api/login",
        authorize_url="https://api.instagram.com/oauth/authorize",
        access_token_url="https://api.instagram.com/oauth/access_token",
        api_base_url="https://graph.instagram.com/",
        profile_url="https://graph.instagram.com/me",
        profile_params={"fields": "id,username"},
        profile_fields=ProfileFields(id="id", email=None, name="username"),
        token_placement="uri",
    ),
    Provider(
        name="facebook",
        protocol=Protocol.OAUTH2,
        mode=Mode.SIGN_IN,
        failure_redirect="/api/login",
        scope="email public_profile",
        authorize_url="https://www.facebook.com/v3.2/dialog/oauth",
        access_token_url="https://graph.facebook.com/v3.2/oauth/access_token",
        api_base_url="https://graph.facebook.com/v3.2/",
        profile_url="https://graph.facebook.com/v3.2/me",
        profile_params={"fields": "id,name,email,gender,location"},
    ),
    Provider(
        name="github",
        protocol=Protocol.OAUTH2,
        mode=Mode.SIGN_IN,
        failure_redirect="/api/login",
        scope="user:email",
        authorize_url="https://github.com/login/oauth/authorize",
        access_token_url="https://github.com/login/oauth/access_token",
        api_base_url="https://api.github.com/",
        profile_url="https://api.github.com/user",
        profile_fields=ProfileFields(id="id", email="email", name="name", picture="avatar_url"),
    ),
    Provider(
        name="google",
        protocol=Protocol.OAUTH2,
        mode=Mode.SIGN_IN,
        failure_redirect="/api/login",
        scope="profile email",
        authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
        access_token_url="https://oauth2.googleapis.com/token",
        api_base_url="https://www.googleapis.com/",
        profile_url="https://www.googleapis.com/oauth2/v2/userinfo",
        profile_fields=ProfileFields(id="id", email="email", name="name", picture="picture"),
    ),
    Provider(
        name="twitter",
        protocol=Protocol.OAUTH1,
        mode=Mode.SIGN_IN,
        failure_redirect="/api/login",
        request_token_url="https://api.twitter.com/oauth/request_token",
        authorize_url="https://api.twitter.com/oauth/authenticate",
        access_token_url="https://api.twitter.com/oauth/access_token",
        api_base_url="https://api.twitter.com/1.1/",
        profile_url="https://api.twitter.com/1.1/account/verify_credentials.json",
        profile_fields=ProfileFields(
            id="id_str", email=None, name="name", picture="profile_image_url_https"
        ),
    ),
    Provider(
        name="linkedin",
        protocol=Protocol.OAUTH2,
        mode=Mode.SIGN_IN,
        failure_redirect="/api/login",
        scope="r_liteprofile r_emailaddress",
        authorize_url="https://www.linkedin.com/oauth/v2/authorization",
        access_token_url="https://www.linkedin.com/oauth/v2/accessToken",
        api_base_url="https://api.linkedin.com/v2/",
        profile_url="https://api.linkedin.com/v2/me",
        profile_fields=ProfileFields(id="id", email=None, name="localizedFirstName"),
    ),
    # Authorize only
    Provider(
        name="foursquare",
        protocol=Protocol.OAUTH2,
        mode=Mode.AUTHORIZE,
        failure_redirect="/api/api",
        success_redirect="/api/api/foursquare",
        authorize_url="https://foursquare.com/oauth2/authenticate",
        access_token_url="https://foursquare.com/oauth2/access_token",
        api_base_url="https://api.foursquare.com/v2/",
        profile_url="https://api.foursquare.com/v2/users/self",
        profile_params={"v": "20140806"},
        profile_fields=ProfileFields(id="response.user.id", email=None, name=None),
        token_placement="oauth_token",
    ),
    Provider(
        name="tumblr",
        protocol=Protocol.OAUTH1,
        mode=Mode.AUTHORIZE,
        failure_redirect="/api/api",
        success_redirect="/api/api/tumblr",
        request_token_url="https://www.tumblr.com/oauth/request_token",
        authorize_url="https://www.tumblr.com/oauth/authorize",
        access_token_url="https://www.tumblr.com/oauth/access_token",
        api_base_url="https://api.tumblr.com/v2/",
        profile_url="https://api.tumblr.com/v2/user/info",
        profile_fields=ProfileFields(id="response.user.name", email=None, name="response.user.name"),
    ),
    Provider(
        name="steam",
        protocol=Protocol.OPENID,
        mode=Mode.AUTHORIZE,
        failure_redirect="/api/login",
    ),
    Provider(
        name="pinterest",
        protocol=Protocol.OAUTH2,
        mode=Mode.AUTHORIZE,
        failure_redirect="/api/login",
        success_redirect="/api/api/pinterest",
        scope="read_public write_public",
        authorize_url="https://api.pinterest.com/oauth/",
        access_token_url="https://api.pinterest.com/v1/oauth/token",
        api_base_url="https://api.pinterest.com/v1/",
        profile_url="https://api.pinterest.com/v1/me/",
        profile_fields=ProfileFields(id="data.id", email=None, name="data.first_name"),
        token_placement="uri",
    ),
)

PROVIDERS_BY_NAME: dict[str, Provider] = {p.name: p for p in PROVIDERS}


def get_provider(name: str) -> Provider:
    """Look up a provider by name.

    Raises:
        KeyError: If the provider is not in the table
    """
    return PROVIDERS_BY_NAME[name]


def lookup(document: dict, dotted_path: str | None):
    """Fetch `a.b.c` from nested dicts; None when any step is missing."""
    if not dotted_path:
        return None
    value = document
    for part in dotted_path.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


class ProviderError(Exception):
    """A provider rejected a request or returned something unusable."""


class ProviderNotConfigured(ProviderError):
    """No credentials are configured for a provider."""
