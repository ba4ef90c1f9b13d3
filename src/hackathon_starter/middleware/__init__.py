"""Request pipeline.

The pipeline is an explicit ordered list; the first entry is the outermost
layer and sees the request first:

1. status monitor
2. gzip compression
3. request logging
4. server-side session
5. authentication (principal loading)
6. flash messages
7. CSRF gate (upload submission exempt)
8. security headers
9. return-to tracker

Body parsing and validation happen in the route handlers; static files and
the error handler sit behind the router.
"""

from __future__ import annotations

from starlette.middleware import Middleware
from starlette.middleware.gzip import GZipMiddleware

from hackathon_starter.config import Settings
from hackathon_starter.middleware.csrf import CSRFMiddleware
from hackathon_starter.middleware.flash import FlashMiddleware
from hackathon_starter.middleware.headers import SecurityHeadersMiddleware
from hackathon_starter.middleware.monitor import StatusMonitor, StatusMonitorMiddleware
from hackathon_starter.middleware.principal import AuthenticationMiddleware
from hackathon_starter.middleware.request_log import RequestLoggingMiddleware
from hackathon_starter.middleware.return_to import ReturnToMiddleware, ReturnToRule
from hackathon_starter.middleware.sessions import SessionMiddleware, SessionStore


def build_pipeline(
    settings: Settings,
    store: SessionStore,
    monitor: StatusMonitor,
) -> list[Middleware]:
    """Return the middleware stack in request order."""
    return_to_rule = ReturnToRule(
        login_path=settings.login_path,
        signup_path=settings.signup_path,
        auth_prefix=settings.auth_path_prefix,
        account_path=settings.account_path,
    )

    return [
        Middleware(StatusMonitorMiddleware, monitor=monitor),
        Middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size),
        Middleware(RequestLoggingMiddleware),
        Middleware(SessionMiddleware, store=store, settings=settings),
        Middleware(AuthenticationMiddleware),
        Middleware(FlashMiddleware),
        Middleware(CSRFMiddleware, exempt_paths=(settings.upload_path,)),
        Middleware(SecurityHeadersMiddleware, frame_options="SAMEORIGIN", xss_protection=True),
        Middleware(ReturnToMiddleware, rule=return_to_rule),
    ]


__all__ = ["build_pipeline"]
