"""FastAPI application factory.

Creates the application: middleware pipeline, route table, static files,
and error handlers.

## Usage

```python
from hackathon_starter.api import create_app

app = create_app()

# Run with uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
```

## Configuration

The app is configured via environment variables. See
`hackathon_starter.config` for available settings.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Response

from hackathon_starter.api.errors import install_error_handlers
from hackathon_starter.api.routes import register_routes
from hackathon_starter.config import get_settings
from hackathon_starter.database.connection import (
    DatabaseConnectionError,
    close_db,
    create_tables,
    init_db,
    verify_connection,
)
from hackathon_starter.middleware import build_pipeline
from hackathon_starter.middleware.monitor import StatusMonitor
from hackathon_starter.middleware.sessions import create_session_store, purge_expired_sessions
from hackathon_starter.middleware.static import CachedStaticFiles

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks:
    - Initialize and check the database connection (exit on failure)
    - Start purging expired sessions
    - Clean up on shutdown
    """
    settings = get_settings()

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")

    await init_db()
    try:
        await verify_connection()
    except DatabaseConnectionError as e:
        logger.error(f"Database connection error: {e}")
        logger.error("Please make sure the database is running.")
        await close_db()
        raise SystemExit(1) from e

    if settings.database_create_tables:
        await create_tables()

    purge_task = asyncio.create_task(
        purge_expired_sessions(
            app.state.session_store, settings.session_clear_interval_seconds
        )
    )

    logger.info(
        f"App is running at http://localhost:{settings.port} in {settings.environment} mode"
    )

    yield

    # Shutdown
    logger.info("Shutting down")
    purge_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await purge_task
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application
    """
    settings = get_settings()

    session_store = create_session_store(settings)
    monitor = StatusMonitor()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Web application starter with sessions and OAuth sign-in",
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        openapi_url="/openapi.json" if settings.debug else None,
        middleware=build_pipeline(settings, session_store, monitor),
        lifespan=lifespan,
    )
    app.state.session_store = session_store
    app.state.monitor = monitor

    @app.get("/status", tags=["Health"])
    async def status():
        """Request statistics and uptime."""
        return {"status": "healthy", "version": settings.app_version, **monitor.snapshot()}

    @app.get("/status/metrics", tags=["Health"])
    async def status_metrics():
        """Request statistics in the Prometheus text format."""
        return Response(content=monitor.render(), media_type=monitor.content_type)

    register_routes(app)

    if settings.static_dir.is_dir():
        app.mount(
            "/",
            CachedStaticFiles(
                directory=settings.static_dir,
                max_age=settings.static_max_age_seconds,
            ),
            name="static",
        )
    else:
        logger.warning(f"Static directory {settings.static_dir} not found; not serving assets")

    install_error_handlers(app, settings.debug)

    return app
