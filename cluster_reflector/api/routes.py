"""HTTP route handlers.

The reflector and config are read from ``request.app.state``; see
``cluster_reflector.api.app.create_app``.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from cluster_reflector.api.schemas import ClusterInfoResponse, HealthResponse
from cluster_reflector.errors import HealthCheckError
from cluster_reflector.observability.metrics import render_latest

_log = structlog.get_logger(component="api.routes")

router = APIRouter()


@router.get(
    "/cluster-info",
    response_model=ClusterInfoResponse,
    response_model_by_alias=True,
    summary="Nodes and application versions",
)
async def cluster_info(request: Request) -> ClusterInfoResponse:
    snapshot = request.app.state.reflector.fetch_snapshot()
    _log.debug("served_cluster_info", nodes=len(snapshot.nodes), apps=len(snapshot.apps))
    return ClusterInfoResponse.from_snapshot(snapshot)


@router.get(
    "/healthz",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
    summary="Kubernetes API connectivity and cache freshness",
)
async def healthz(request: Request) -> JSONResponse:
    try:
        await request.app.state.reflector.health_check(request.app.state.health_timeout)
    except HealthCheckError as exc:
        _log.warning("health_check_failed", reason=exc.reason.value, error=exc.detail)
        body = HealthResponse(status="unhealthy", reason=exc.reason.value, error=exc.detail)
        return JSONResponse(status_code=503, content=body.model_dump())
    return JSONResponse(status_code=200, content=HealthResponse(status="healthy").model_dump(exclude_none=True))


async def metrics(request: Request) -> Response:
    """Prometheus exposition; mounted only when metrics are enabled."""
    body, content_type = render_latest(request.app.state.reflector.fetch_snapshot())
    return Response(content=body, media_type=content_type)
