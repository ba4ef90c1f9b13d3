"""API demonstration routes.

Provider-backed demos call the provider with the tokens the user linked.
Keyed demos only report whether their API key is configured; their
third-party business logic is not part of this application, so the forms
they post validate input and then answer 501.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from fastapi import Depends, File, HTTPException, Request, UploadFile, status
from starlette.responses import Response

from hackathon_starter.auth.accounts import provider_title
from hackathon_starter.auth.api_client import ProviderCredentials
from hackathon_starter.auth.gates import current_user
from hackathon_starter.auth.oauth import ProviderRegistry, get_provider_registry
from hackathon_starter.auth.providers import ProviderError
from hackathon_starter.config import get_settings
from hackathon_starter.controllers.forms import (
    PinForm,
    SmsForm,
    StripeForm,
    TweetForm,
    read_form,
)
from hackathon_starter.controllers.views import redirect, render
from hackathon_starter.middleware.flash import flash

logger = logging.getLogger(__name__)

API_INDEX_PATH = "/api/api"
TWITTER_STATUS_URL = "https://api.twitter.com/1.1/statuses/update.json"
PINTEREST_PINS_URL = "https://api.pinterest.com/v1/pins/"


@dataclass(frozen=True)
class KeyedDemo:
    slug: str
    title: str
    setting: str | None  # Settings attribute holding the API key


KEYED_DEMOS: tuple[KeyedDemo, ...] = (
    KeyedDemo("lastfm", "Last.fm API", "lastfm_key"),
    KeyedDemo("nyt", "New York Times API", "nyt_key"),
    KeyedDemo("aviary", "Aviary API", "aviary_client_id"),
    KeyedDemo("stripe", "Stripe API", "stripe_skey"),
    KeyedDemo("scraping", "Web Scraping", None),
    KeyedDemo("twilio", "Twilio API", "twilio_sid"),
    KeyedDemo("clockwork", "Clockwork SMS API", "clockwork_key"),
    KeyedDemo("paypal", "PayPal API", "paypal_id"),
    KeyedDemo("lob", "Lob API", "lob_key"),
    KeyedDemo("google-maps", "Google Maps API", "google_maps_api_key"),
)

KEYED_DEMOS_BY_SLUG = {demo.slug: demo for demo in KEYED_DEMOS}

PROVIDER_DEMOS: tuple[str, ...] = (
    "facebook",
    "foursquare",
    "github",
    "instagram",
    "linkedin",
    "pinterest",
    "steam",
    "tumblr",
    "twitter",
)


def _is_configured(demo: KeyedDemo) -> bool:
    if demo.setting is None:
        return True
    return bool(getattr(get_settings(), demo.setting, None))


async def get_api(request: Request) -> Response:
    user = current_user(request)
    keyed = [
        {"name": demo.title, "path": f"{API_INDEX_PATH}/{demo.slug}", "configured": _is_configured(demo)}
        for demo in KEYED_DEMOS
    ]
    providers = [
        {
            "name": provider_title(name),
            "path": f"{API_INDEX_PATH}/{name}",
            "linked": bool(user and user.has_token(name)),
        }
        for name in PROVIDER_DEMOS
    ]
    return render(request, "api/index", "API Examples", keyed=keyed, providers=providers)


def keyed_demo(slug: str, **context) -> Callable:
    """Build the page handler for a keyed demo."""
    demo = KEYED_DEMOS_BY_SLUG[slug]

    async def page(request: Request) -> Response:
        return render(
            request,
            f"api/{demo.slug}",
            demo.title,
            configured=_is_configured(demo),
            **context,
        )

    page.__name__ = f"get_{slug.replace('-', '_')}"
    return page


def keyed_submission(slug: str, form_cls) -> Callable:
    """Build the form handler for a keyed demo."""
    demo = KEYED_DEMOS_BY_SLUG[slug]

    async def submit(request: Request) -> Response:
        form = await read_form(request, form_cls)
        if form is None:
            return redirect(f"{API_INDEX_PATH}/{slug}")
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail=f"{demo.title} integration is not enabled in this deployment",
        )

    submit.__name__ = f"post_{slug.replace('-', '_')}"
    return submit


get_lastfm = keyed_demo("lastfm")
get_new_york_times = keyed_demo("nyt")
get_aviary = keyed_demo("aviary")
get_stripe = keyed_demo("stripe")
post_stripe = keyed_submission("stripe", StripeForm)
get_scraping = keyed_demo("scraping")
get_twilio = keyed_demo("twilio")
post_twilio = keyed_submission("twilio", SmsForm)
get_clockwork = keyed_demo("clockwork")
post_clockwork = keyed_submission("clockwork", SmsForm)
get_paypal = keyed_demo("paypal")
get_paypal_success = keyed_demo("paypal", result=True)
get_paypal_cancel = keyed_demo("paypal", result=False)
get_lob = keyed_demo("lob")
get_google_maps = keyed_demo("google-maps")


def provider_demo(name: str) -> Callable:
    """Build the page handler showing the linked provider's profile."""

    async def page(
        request: Request,
        registry: ProviderRegistry = Depends(get_provider_registry),
    ) -> Response:
        user = current_user(request)
        credentials = ProviderCredentials.from_token(user.token_for(name))
        provider = registry.get(name)
        try:
            if name == "steam":
                profile = await registry.steam.get_player_summary(credentials.access_token)
            else:
                profile = await registry.api_client.fetch_profile(provider, credentials)
        except ProviderError as e:
            flash(request, "errors", str(e))
            return redirect(API_INDEX_PATH)

        return render(
            request, f"api/{name}", f"{provider_title(name)} API", profile=profile
        )

    page.__name__ = f"get_{name}"
    return page


get_facebook = provider_demo("facebook")
get_foursquare = provider_demo("foursquare")
get_github = provider_demo("github")
get_instagram = provider_demo("instagram")
get_linkedin = provider_demo("linkedin")
get_pinterest = provider_demo("pinterest")
get_steam = provider_demo("steam")
get_tumblr = provider_demo("tumblr")
get_twitter = provider_demo("twitter")


async def post_twitter(
    request: Request,
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> Response:
    form = await read_form(request, TweetForm)
    if form is None:
        return redirect(f"{API_INDEX_PATH}/twitter")

    credentials = ProviderCredentials.from_token(current_user(request).token_for("twitter"))
    try:
        await registry.api_client.request(
            registry.get("twitter"),
            credentials,
            "POST",
            TWITTER_STATUS_URL,
            data={"status": form.tweet},
        )
    except ProviderError as e:
        flash(request, "errors", str(e))
        return redirect(f"{API_INDEX_PATH}/twitter")

    flash(request, "success", "Your tweet has been posted.")
    return redirect(f"{API_INDEX_PATH}/twitter")


async def post_pinterest(
    request: Request,
    registry: ProviderRegistry = Depends(get_provider_registry),
) -> Response:
    form = await read_form(request, PinForm)
    if form is None:
        return redirect(f"{API_INDEX_PATH}/pinterest")

    credentials = ProviderCredentials.from_token(current_user(request).token_for("pinterest"))
    try:
        await registry.api_client.request(
            registry.get("pinterest"),
            credentials,
            "POST",
            PINTEREST_PINS_URL,
            data={"board": form.board, "note": form.note, "image_url": form.image_url},
        )
    except ProviderError as e:
        flash(request, "errors", str(e))
        return redirect(f"{API_INDEX_PATH}/pinterest")

    flash(request, "success", "Pin created.")
    return redirect(f"{API_INDEX_PATH}/pinterest")


async def get_file_upload(request: Request) -> Response:
    return render(request, "api/upload", "File Upload")


async def post_file_upload(
    request: Request,
    my_file: UploadFile = File(..., alias="myFile"),
) -> Response:
    """Store the uploaded file under a random name in the upload directory."""
    upload_dir = Path(get_settings().upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)

    destination = upload_dir / secrets.token_hex(16)
    size = 0
    with destination.open("wb") as out:
        while chunk := await my_file.read(64 * 1024):
            out.write(chunk)
            size += len(chunk)

    logger.info(f"Stored upload {my_file.filename!r} ({size} bytes) as {destination.name}")
    flash(request, "success", "File was uploaded successfully.")
    return redirect(f"{API_INDEX_PATH}/upload")
