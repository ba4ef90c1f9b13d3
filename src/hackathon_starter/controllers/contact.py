"""Contact form."""

from __future__ import annotations

import logging

from fastapi import Request
from starlette.responses import Response

from hackathon_starter.controllers.forms import ContactForm, read_form
from hackathon_starter.controllers.views import redirect, render
from hackathon_starter.middleware.flash import flash

logger = logging.getLogger(__name__)


async def get_contact(request: Request) -> Response:
    return render(request, "contact", "Contact")


async def post_contact(request: Request) -> Response:
    form = await read_form(request, ContactForm)
    if form is None:
        return redirect("/api/contact")

    # Messages are recorded in the application log; no mail transport is configured.
    logger.info(f"Contact message from {form.name} <{form.email}>: {form.message}")
    flash(request, "success", "Thanks! Your message has been received.")
    return redirect("/api/contact")
