"""Security response headers."""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add clickjacking and legacy XSS-filter headers to every response."""

    def __init__(self, app, frame_options: str = "SAMEORIGIN", xss_protection: bool = True):
        super().__init__(app)
        self.frame_options = frame_options
        self.xss_protection = "1; mode=block" if xss_protection else "0"

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", self.frame_options)
        response.headers.setdefault("X-XSS-Protection", self.xss_protection)
        return response
