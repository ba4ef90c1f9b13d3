"""Route table.

Every route is a `(method, path, handler, gates)` entry. The table is built
once at import and never changes; `register_routes()` installs it on an app.
Gates run in order before the handler (see `hackathon_starter.auth.gates`).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from fastapi import Depends, FastAPI

from hackathon_starter.auth.gates import is_authenticated, is_authorized
from hackathon_starter.auth.providers import PROVIDERS
from hackathon_starter.controllers import api, contact, home, oauth, user


@dataclass(frozen=True)
class Route:
    method: str
    path: str
    handler: Callable
    gates: tuple[Callable, ...] = ()


def route(method: str, path: str, handler: Callable, gates: tuple[Callable, ...] = ()) -> Route:
    return Route(method=method, path=path, handler=handler, gates=gates)


def authorized(provider: str) -> tuple[Callable, ...]:
    """Gates for a demo that needs a linked `provider` account."""
    return (is_authenticated, is_authorized(provider))


PRIMARY_ROUTES: tuple[Route, ...] = (
    route("GET", "/", home.index),
    route("GET", "/api/", home.index),
    route("GET", "/api/login", user.get_login),
    route("POST", "/api/login", user.post_login),
    route("GET", "/api/logout", user.logout),
    route("GET", "/api/forgot", user.get_forgot),
    route("POST", "/api/forgot", user.post_forgot),
    route("GET", "/api/reset/{token}", user.get_reset),
    route("POST", "/api/reset/{token}", user.post_reset),
    route("GET", "/api/signup", user.get_signup),
    route("POST", "/api/signup", user.post_signup),
    route("GET", "/api/contact", contact.get_contact),
    route("POST", "/api/contact", contact.post_contact),
    route("GET", "/api/account", user.get_account, (is_authenticated,)),
    route("POST", "/api/account/profile", user.post_update_profile, (is_authenticated,)),
    route("POST", "/api/account/password", user.post_update_password, (is_authenticated,)),
    route("POST", "/api/account/delete", user.post_delete_account, (is_authenticated,)),
    route("GET", "/api/account/unlink/{provider}", user.get_oauth_unlink, (is_authenticated,)),
)

API_ROUTES: tuple[Route, ...] = (
    route("GET", "/api/api", api.get_api),
    route("GET", "/api/api/lastfm", api.get_lastfm),
    route("GET", "/api/api/nyt", api.get_new_york_times),
    route("GET", "/api/api/aviary", api.get_aviary),
    route("GET", "/api/api/steam", api.get_steam, authorized("steam")),
    route("GET", "/api/api/stripe", api.get_stripe),
    route("POST", "/api/api/stripe", api.post_stripe),
    route("GET", "/api/api/scraping", api.get_scraping),
    route("GET", "/api/api/twilio", api.get_twilio),
    route("POST", "/api/api/twilio", api.post_twilio),
    route("GET", "/api/api/clockwork", api.get_clockwork),
    route("POST", "/api/api/clockwork", api.post_clockwork),
    route("GET", "/api/api/foursquare", api.get_foursquare, authorized("foursquare")),
    route("GET", "/api/api/tumblr", api.get_tumblr, authorized("tumblr")),
    route("GET", "/api/api/facebook", api.get_facebook, authorized("facebook")),
    route("GET", "/api/api/github", api.get_github, authorized("github")),
    route("GET", "/api/api/twitter", api.get_twitter, authorized("twitter")),
    route("POST", "/api/api/twitter", api.post_twitter, authorized("twitter")),
    route("GET", "/api/api/linkedin", api.get_linkedin, authorized("linkedin")),
    route("GET", "/api/api/instagram", api.get_instagram, authorized("instagram")),
    route("GET", "/api/api/paypal", api.get_paypal),
    route("GET", "/api/api/paypal/success", api.get_paypal_success),
    route("GET", "/api/api/paypal/cancel", api.get_paypal_cancel),
    route("GET", "/api/api/lob", api.get_lob),
    route("GET", "/api/api/upload", api.get_file_upload),
    route("POST", "/api/api/upload", api.post_file_upload),
    route("GET", "/api/api/pinterest", api.get_pinterest, authorized("pinterest")),
    route("POST", "/api/api/pinterest", api.post_pinterest, authorized("pinterest")),
    route("GET", "/api/api/google-maps", api.get_google_maps),
)

AUTH_ROUTES: tuple[Route, ...] = tuple(
    entry
    for provider in PROVIDERS
    for entry in (
        route("GET", f"/api/auth/{provider.name}", oauth.start_handler(provider)),
        route("GET", f"/api/auth/{provider.name}/callback", oauth.callback_handler(provider)),
    )
)

ROUTES: tuple[Route, ...] = PRIMARY_ROUTES + API_ROUTES + AUTH_ROUTES


def register_routes(app: FastAPI, routes: tuple[Route, ...] = ROUTES) -> None:
    """Install the route table on `app`."""
    for entry in routes:
        app.add_api_route(
            entry.path,
            entry.handler,
            methods=[entry.method],
            dependencies=[Depends(gate) for gate in entry.gates],
            include_in_schema=False,
        )
