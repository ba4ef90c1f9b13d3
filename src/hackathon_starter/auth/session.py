"""Signed session cookie tokens.

The session payload lives server-side (see `hackathon_starter.middleware.sessions`).
The client only holds a signed JWT naming the session id, so a tampered or
forged cookie is rejected before the store is consulted.

## Token Structure

```json
{
  "sid": "random-session-id",
  "iat": 1234567890,
  "exp": 1235172690,
  "type": "session"
}
```
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from hackathon_starter.config import get_settings

logger = logging.getLogger(__name__)

# JWT configuration
ALGORITHM = "HS256"
TOKEN_TYPE = "session"


@dataclass
class SessionToken:
    """Data carried by the session cookie."""

    session_id: str
    created_at: datetime
    expires_at: datetime

    @property
    def is_expired(self) -> bool:
        """Check if the cookie has expired."""
        return datetime.now(timezone.utc) > self.expires_at


def new_session_id() -> str:
    """Generate a random, URL-safe session identifier."""
    return secrets.token_urlsafe(32)


def create_session_token(
    session_id: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed cookie value for a session id.

    Args:
        session_id: The server-side session identifier
        expires_delta: Custom expiration time (or the session TTL from settings)

    Returns:
        Signed JWT token string
    """
    settings = get_settings()

    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(seconds=settings.session_ttl_seconds)

    payload = {
        "sid": session_id,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
        "type": TOKEN_TYPE,
    }

    return jwt.encode(payload, settings.session_secret, algorithm=ALGORITHM)


def verify_session_token(token: str) -> SessionToken | None:
    """Verify and decode a session cookie.

    Returns:
        SessionToken if valid, None if invalid or expired
    """
    settings = get_settings()

    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Session token verification failed: {e}")
        return None

    if payload.get("type") != TOKEN_TYPE:
        logger.debug("Invalid token type")
        return None

    try:
        session_id = str(payload["sid"])
        created_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    except (KeyError, ValueError, TypeError) as e:
        logger.debug(f"Invalid token payload: {e}")
        return None

    token_data = SessionToken(
        session_id=session_id,
        created_at=created_at,
        expires_at=expires_at,
    )

    if token_data.is_expired:
        logger.debug("Session token expired")
        return None

    return token_data
