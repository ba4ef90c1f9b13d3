"""Exception handlers installed on the application.

- `GateRedirect` becomes a 302 to the gate's fallback location
- Anything else unhandled becomes a 500 document, with the traceback
  included when DEBUG is on
"""

from __future__ import annotations

import logging
import traceback

from fastapi import FastAPI, Request
from starlette.responses import JSONResponse, RedirectResponse

from hackathon_starter.auth.gates import GateRedirect

logger = logging.getLogger(__name__)


async def gate_redirect_handler(request: Request, exc: GateRedirect) -> RedirectResponse:
    return RedirectResponse(exc.location, status_code=302)


def server_error_handler(debug: bool):
    async def handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        body = {"detail": "Internal Server Error"}
        if debug:
            body["error"] = repr(exc)
            body["traceback"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(body, status_code=500)

    return handler


def install_error_handlers(app: FastAPI, debug: bool) -> None:
    app.add_exception_handler(GateRedirect, gate_redirect_handler)
    app.add_exception_handler(Exception, server_error_handler(debug))
