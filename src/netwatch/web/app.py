"""FastAPI application factory for the NetWatch HTTP API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from netwatch import __version__
from netwatch.config import NetWatchConfig
from netwatch.errors import SourceUnavailable
from netwatch.monitor.service import NetWatchMonitor, create_monitor

logger = logging.getLogger(__name__)


def create_app(
    config: NetWatchConfig | None = None,
    monitor: NetWatchMonitor | None = None,
    start_polling: bool = True,
) -> FastAPI:
    """Build and return the FastAPI application.

    The monitor's poll loop runs for the lifetime of the app when
    ``start_polling`` is set; otherwise polls happen only via POST /api/refresh.
    """
    config = config or NetWatchConfig.load()
    monitor = monitor or create_monitor(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if start_polling:
            monitor.start()
        try:
            yield
        finally:
            monitor.stop(timeout=config.poll_timeout)

    app = FastAPI(
        title="NetWatch",
        version=__version__,
        docs_url="/api/docs",
        lifespan=lifespan,
    )

    # Store config and monitor in app state
    app.state.config = config
    app.state.monitor = monitor

    @app.exception_handler(SourceUnavailable)
    async def source_unavailable(request: Request, exc: SourceUnavailable) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    # Register API routers
    from netwatch.web.api.changes import router as changes_router
    from netwatch.web.api.connections import router as connections_router
    from netwatch.web.api.exports import router as exports_router
    from netwatch.web.api.summaries import router as summaries_router

    app.include_router(connections_router, prefix="/api")
    app.include_router(changes_router, prefix="/api")
    app.include_router(summaries_router, prefix="/api")
    app.include_router(exports_router, prefix="/api")

    return app
