"""One-shot flash messages stored in the session.

Messages are grouped by category (`errors`, `info`, `success`) and consumed
the next time a page is rendered.

```python
flash(request, "success", "Profile information has been updated.")
messages = consume_flashes(request)  # {"success": [{"msg": "..."}]}
```
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

FLASH_KEY = "flash"


class FlashMessages:
    """Accessor bound to one request's session."""

    def __init__(self, session: dict):
        self._session = session

    def add(self, category: str, message: str) -> None:
        bucket = self._session.setdefault(FLASH_KEY, {})
        bucket.setdefault(category, []).append({"msg": message})

    def peek(self) -> dict[str, list[dict[str, str]]]:
        return dict(self._session.get(FLASH_KEY, {}))

    def consume(self) -> dict[str, list[dict[str, str]]]:
        return self._session.pop(FLASH_KEY, None) or {}


def flash(request: Request, category: str, message: str) -> None:
    request.state.flash.add(category, message)


def consume_flashes(request: Request) -> dict[str, list[dict[str, str]]]:
    return request.state.flash.consume()


class FlashMiddleware(BaseHTTPMiddleware):
    """Expose `request.state.flash` for the session of each request."""

    async def dispatch(self, request: Request, call_next):
        request.state.flash = FlashMessages(request.session)
        return await call_next(request)
