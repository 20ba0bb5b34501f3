"""FastAPI application factory for cluster-reflector.

Usage::

    from cluster_reflector.api.app import create_app

    app = create_app(reflector=reflector, config=config)

The factory is used by both the production bootstrap
(``cluster_reflector.app``) and unit tests.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cluster_reflector.api.routes import metrics, router
from cluster_reflector.api.schemas import ErrorResponse
from cluster_reflector.models.config import ReflectorConfig

_log = structlog.get_logger(component="api.app")


def create_app(reflector: Any, config: ReflectorConfig | None = None) -> FastAPI:
    """Create and configure the cluster-reflector FastAPI application.

    Args:
        reflector: ClusterReflector (or anything with ``fetch_snapshot`` and
                   ``health_check``).
        config:    ReflectorConfig. Defaults apply when omitted.

    Returns:
        Configured FastAPI application, ready to be served by uvicorn.
    """
    from cluster_reflector import __version__

    config = config or ReflectorConfig()

    app = FastAPI(
        title="cluster-reflector",
        summary="Kubernetes node inventory and application versions",
        version=__version__,
    )

    # Dependencies live in app.state so handlers need no module globals.
    app.state.reflector = reflector
    app.state.config = config
    app.state.health_timeout = config.health.timeout_seconds

    app.include_router(router)
    if config.metrics.enabled:
        app.add_api_route("/metrics", metrics, methods=["GET"], include_in_schema=False)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.middleware("http")
    async def log_requests(
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        _log.info(
            "http_request",
            method=request.method,
            path=str(request.url.path),
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            user_agent=request.headers.get("user-agent", ""),
            remote_addr=request.client.host if request.client else "",
        )
        return response

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request,
        exc: Exception,
    ) -> JSONResponse:
        """Catch-all for unhandled exceptions; never expose stack traces."""
        _log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error="INTERNAL_ERROR",
                detail="An unexpected error occurred.",
            ).model_dump(),
        )

    return app
