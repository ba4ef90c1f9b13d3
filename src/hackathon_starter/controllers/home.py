"""Home page."""

from __future__ import annotations

from fastapi import Request
from starlette.responses import Response

from hackathon_starter.controllers.views import render


async def index(request: Request) -> Response:
    return render(request, "home", "Home")
