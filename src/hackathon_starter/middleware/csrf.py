"""CSRF protection.

A random token is kept in the session under `_csrf` and exposed to handlers
as `request.state.csrf_token`. Mutating requests must echo it back in one of:

- the `_csrf` field of a urlencoded or JSON body
- the `X-CSRF-Token` or `X-XSRF-Token` header

Multipart bodies are not parsed here, so they must use a header. Exempt
paths skip the check entirely.
"""

from __future__ import annotations

import hmac
import json
import logging
import secrets
from urllib.parse import parse_qs

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "TRACE"})
SESSION_KEY = "_csrf"
FORM_FIELD = "_csrf"
HEADER_NAMES = ("x-csrf-token", "x-xsrf-token")


def ensure_csrf_token(session: dict) -> str:
    """Return the session's CSRF token, creating it on first use."""
    token = session.get(SESSION_KEY)
    if not token:
        token = secrets.token_urlsafe(32)
        session[SESSION_KEY] = token
    return token


async def submitted_token(request: Request) -> str | None:
    """Find the token a client sent with a request."""
    for header in HEADER_NAMES:
        value = request.headers.get(header)
        if value:
            return value

    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/x-www-form-urlencoded"):
        body = await request.body()
        values = parse_qs(body.decode("latin-1")).get(FORM_FIELD)
        return values[0] if values else None
    if content_type.startswith("application/json"):
        body = await request.body()
        try:
            payload = json.loads(body or b"null")
        except ValueError:
            return None
        if isinstance(payload, dict) and isinstance(payload.get(FORM_FIELD), str):
            return payload[FORM_FIELD]
    return None


class CSRFMiddleware(BaseHTTPMiddleware):
    """Reject mutating requests that lack the session's CSRF token."""

    def __init__(self, app, exempt_paths: tuple[str, ...] = ()):
        super().__init__(app)
        self.exempt_paths = frozenset(exempt_paths)

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        token = ensure_csrf_token(request.session)
        request.state.csrf_token = token

        if request.method not in SAFE_METHODS:
            sent = await submitted_token(request)
            if not sent:
                logger.info(f"CSRF token missing on {request.method} {request.url.path}")
                return JSONResponse({"detail": "CSRF token missing"}, status_code=403)
            if not hmac.compare_digest(sent.encode(), token.encode()):
                logger.info(f"CSRF token mismatch on {request.method} {request.url.path}")
                return JSONResponse({"detail": "CSRF token mismatch"}, status_code=403)

        return await call_next(request)
