"""Page responses.

Pages are JSON documents rather than rendered templates. Every page carries
the same envelope so a front end can render any of them:

```json
{
  "page": "account/login",
  "title": "Login",
  "user": null,
  "messages": {"errors": [{"msg": "Password cannot be blank."}]},
  "csrf_token": "...",
  ...page context...
}
```
"""

from __future__ import annotations

from typing import Any

from fastapi.encoders import jsonable_encoder
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse

from hackathon_starter.auth.gates import current_user
from hackathon_starter.database.models import User
from hackathon_starter.middleware.flash import consume_flashes


def serialize_user(user: User | None) -> dict[str, Any] | None:
    if user is None:
        return None
    return {
        "id": str(user.id),
        "email": user.email,
        "name": user.name,
        "gender": user.gender,
        "location": user.location,
        "website": user.website,
        "picture": user.picture,
        "has_password": bool(user.password_hash),
        "linked_providers": sorted(token.provider for token in user.tokens),
    }


def render(
    request: Request,
    page: str,
    title: str,
    status_code: int = 200,
    **context: Any,
) -> JSONResponse:
    """Build the page document for `page`."""
    body = {
        "page": page,
        "title": title,
        "user": serialize_user(current_user(request)),
        "messages": consume_flashes(request),
        "csrf_token": getattr(request.state, "csrf_token", None),
        **context,
    }
    return JSONResponse(jsonable_encoder(body), status_code=status_code)


def redirect(url: str) -> RedirectResponse:
    """302 redirect, the status browsers follow with a GET after a form post."""
    return RedirectResponse(url, status_code=302)
