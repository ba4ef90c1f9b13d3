"""Remember where to send a user after they sign in.

Signed-out requests record their path in `session["returnTo"]` unless the
path is the login or signup page, lives under the auth prefix, or contains
a dot (treated as a static asset). Signed-in requests record only the
account page. Each capture overwrites the previous one.
"""

from __future__ import annotations

from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

RETURN_TO_KEY = "returnTo"


@dataclass(frozen=True)
class ReturnToRule:
    login_path: str = "/api/login"
    signup_path: str = "/api/signup"
    auth_prefix: str = "/api/auth"
    account_path: str = "/api/account"

    def capture(self, path: str, authenticated: bool) -> bool:
        """Decide whether a request path should become the return target."""
        if not authenticated:
            return (
                path != self.login_path
                and path != self.signup_path
                and not path.startswith(self.auth_prefix)
                and "." not in path
            )
        return path == self.account_path


def get_return_to(request: Request, default: str = "/") -> str:
    """Return target recorded for this session, or `default`."""
    return request.session.get(RETURN_TO_KEY) or default


class ReturnToMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, rule: ReturnToRule):
        super().__init__(app)
        self.rule = rule

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if self.rule.capture(path, request.state.user is not None):
            request.session[RETURN_TO_KEY] = path
        return await call_next(request)
