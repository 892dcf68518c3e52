"""Liveness and database readiness."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response, status

from ...deps import PoolDependency
from ...schemas.system import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get(
    "/healthz",
    response_model=HealthCheckResponse,
    summary="Health check",
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": HealthCheckResponse}},
)
async def read_health(pool: PoolDependency, response: Response) -> HealthCheckResponse:
    """Borrow and return one pooled connection; 503 when the database is unreachable."""
    try:
        connection = await pool.acquire()
    except Exception:
        logger.warning("Health check could not acquire a database connection", exc_info=True)
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthCheckResponse(status="degraded", database="unavailable")
    await pool.release(connection)
    return HealthCheckResponse(status="ok", database="ok")
