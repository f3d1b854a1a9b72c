"""FastAPI application factory."""

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from aptora_extensions.api.assets import create_asset_router, create_proxy_router
from aptora_extensions.api.routes import api_router, router
from aptora_extensions.config import Settings
from aptora_extensions.services.manager import ConnectionManager
from aptora_extensions.services.queries import QueryService
from aptora_extensions.utils.exceptions import AppError

logger = logging.getLogger("aptora_extensions.api")


def create_app(
    settings: Settings,
    dev_mode: bool = False,
    manager: Optional[ConnectionManager] = None,
) -> FastAPI:
    """Assemble the application.

    Args:
        settings: Application settings.
        dev_mode: Proxy frontend requests to the Vite dev server instead of
            serving the built bundle.
        manager: Connection manager to use; one is built from ``settings``
            when omitted.

    Returns:
        The configured FastAPI instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Start connecting in the background; close pools on shutdown."""
        db = manager or ConnectionManager(settings.database_config())
        db.start()
        app.state.manager = db
        app.state.queries = QueryService(db, timeout=settings.query_timeout)
        if dev_mode:
            app.state.proxy_client = httpx.AsyncClient(base_url=settings.vite_dev_url)

        yield

        if dev_mode:
            await app.state.proxy_client.aclose()
        await db.close()

    app = FastAPI(
        title="Aptora Extensions",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        headers = None
        if "allowed" in exc.details:
            headers = {"Allow": ", ".join(exc.details["allowed"])}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http request method=%s path=%s remote_addr=%s status=%d duration=%.1fms",
            request.method,
            request.url.path,
            request.client.host if request.client else "-",
            response.status_code,
            duration_ms,
        )
        return response

    app.include_router(router)
    app.include_router(api_router)
    if dev_mode:
        app.include_router(create_proxy_router())
    else:
        app.include_router(create_asset_router(settings.frontend_dir))

    return app
