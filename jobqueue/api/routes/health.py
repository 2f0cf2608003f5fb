"""
Health check routes.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import Response

from jobqueue import __version__
from jobqueue.api.deps import QueueDep
from jobqueue.clock import utcnow
from jobqueue.observability.metrics import get_metrics
from jobqueue.types.api import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check the health of the API and the job store.",
)
async def health_check(queue: QueueDep) -> HealthResponse:
    """
    Perform a health check.

    Reading the store clock exercises the store connection.

    Args:
        queue: The job queue.

    Returns:
        HealthResponse with service status.
    """
    store_status = "healthy"
    try:
        await queue.store.now()
    except Exception:
        logger.exception("Store health check failed")
        store_status = "unhealthy"

    return HealthResponse(
        status="healthy" if store_status == "healthy" else "degraded",
        version=__version__,
        store=store_status,
        timestamp=utcnow(),
    )


@router.get(
    "/live",
    summary="Liveness check",
    description="Check if the service is alive.",
)
async def liveness_check() -> dict:
    """Kubernetes liveness probe endpoint."""
    return {"alive": True}


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="Expose Prometheus metrics, refreshing the queue depth gauges.",
)
async def metrics(queue: QueueDep) -> Response:
    """
    Expose Prometheus metrics.

    Returns:
        Prometheus-formatted metrics.
    """
    await queue.counts()
    metrics_collector = get_metrics()
    return Response(
        content=metrics_collector.get_metrics(),
        media_type=metrics_collector.get_content_type(),
    )
