"""Per-request access logging in a compact development format."""

from __future__ import annotations

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("hackathon_starter.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log `METHOD path status elapsed` for every request."""

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.3f} ms"
        )
        return response
