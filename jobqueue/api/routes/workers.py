"""
Worker maintenance routes.
"""

import logging

from fastapi import APIRouter

from jobqueue.api.deps import QueueDep
from jobqueue.constants import API_V1_PREFIX
from jobqueue.types.api import ClearLocksResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/workers", tags=["Workers"])


@router.post(
    "/{worker_id}/clear-locks",
    response_model=ClearLocksResponse,
    summary="Release a worker's locks",
    description=(
        "Release every lease held by the named worker so its jobs can be picked "
        "up before the lease expires. Use for workers known to be gone."
    ),
)
async def clear_worker_locks(worker_id: str, queue: QueueDep) -> ClearLocksResponse:
    cleared = await queue.clear_locks(worker_id)
    logger.info(
        "Worker locks cleared via API",
        extra={"worker_id": worker_id, "cleared": cleared},
    )
    return ClearLocksResponse(worker_id=worker_id, cleared=cleared)
