"""
Diary Backend — Health Check Route
===================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Probes the key-value store binding with a one-key listing.
Who:   Called by container health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   Store binding configured and reachable (HTTP 200)
    - degraded:  No store binding configured; the process is up but
                 /api and /summary-data answer 500 (HTTP 200)
    - unhealthy: Store binding configured but unreachable (HTTP 503)
"""

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, Response

from diary_api import __version__
from diary_api.schemas.diary import HealthResponse
from diary_api.services.kv_base import KVStore
from diary_api.services.kv_store import get_kv_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Track when the service started for uptime reporting
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the backend and its key-value store. "
        "Used by container health checks and load balancers."
    ),
)
async def health_check(
    response: Response,
    store: Optional[KVStore] = Depends(get_kv_store),
) -> HealthResponse:
    if store is None:
        store_status = "unconfigured"
        overall = "degraded"
    elif await store.health_check():
        store_status = "connected"
        overall = "healthy"
    else:
        store_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: key-value store unreachable")

    return HealthResponse(
        status=overall,
        version=__version__,
        store=store_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
