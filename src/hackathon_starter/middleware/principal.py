"""Load the authenticated principal for each request.

The session stores only the user id (`session["user_id"]`). This middleware
resolves it into a `User` with its provider tokens and exposes it as
`request.state.user` (None when signed out). Handlers that change the
account re-fetch it inside their own database session.
"""

from __future__ import annotations

import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from hackathon_starter.database.connection import get_db
from hackathon_starter.database.models import User

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"


def log_in(request: Request, user: User) -> None:
    """Bind a user to the current session."""
    request.session[SESSION_USER_KEY] = str(user.id)
    request.state.user = user


def log_out(request: Request) -> None:
    """Unbind the user from the current session."""
    request.session.pop(SESSION_USER_KEY, None)
    request.state.user = None


async def load_user(user_id: str) -> User | None:
    try:
        key = uuid.UUID(user_id)
    except ValueError:
        return None

    async with get_db() as db:
        return await db.get(User, key)


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Populate `request.state.user` from the session."""

    async def dispatch(self, request: Request, call_next):
        request.state.user = None

        user_id = request.session.get(SESSION_USER_KEY)
        if user_id:
            user = await load_user(user_id)
            if user is None:
                logger.warning(f"Session for non-existent user: {user_id}")
                request.session.pop(SESSION_USER_KEY, None)
            request.state.user = user

        return await call_next(request)
