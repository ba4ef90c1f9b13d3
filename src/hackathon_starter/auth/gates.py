"""Route gates.

Gates are FastAPI dependencies attached to routes in the route table. They
either return (the request continues) or raise `GateRedirect`, which the
application turns into a 302 response.

```python
ROUTES = (
    route("GET", "/api/account", user.get_account, gates=(is_authenticated,)),
    route("GET", "/api/api/github", api.get_github,
          gates=(is_authenticated, is_authorized("github"))),
)
```
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import Request

from hackathon_starter.config import get_settings
from hackathon_starter.database.models import User

logger = logging.getLogger(__name__)


class GateRedirect(Exception):
    """Divert the request to another location."""

    def __init__(self, location: str):
        super().__init__(location)
        self.location = location


def current_user(request: Request) -> User | None:
    """The principal loaded for this request, if any."""
    return getattr(request.state, "user", None)


async def is_authenticated(request: Request) -> User:
    """Require a signed-in user; otherwise send them to the login page."""
    user = current_user(request)
    if user is None:
        raise GateRedirect(get_settings().login_path)
    return user


def authorize_path(provider: str) -> str:
    return f"{get_settings().auth_path_prefix}/{provider}"


def is_authorized(provider: str) -> Callable:
    """Build a gate requiring a stored token for `provider`.

    Users without one are sent to that provider's authorize route.
    """

    async def gate(request: Request) -> None:
        user = current_user(request)
        if user is None or not user.has_token(provider):
            logger.debug(f"No {provider} token for request to {request.url.path}")
            raise GateRedirect(authorize_path(provider))

    gate.__name__ = f"is_authorized_{provider}"
    return gate
