"""
Job management routes.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, status
from pydantic import ValidationError

from jobqueue.api.deps import QueueDep
from jobqueue.clock import utcnow
from jobqueue.constants import API_V1_PREFIX
from jobqueue.types.api import (
    EnqueueJobRequest,
    EnqueueJobResponse,
    FlushResponse,
    JobResponse,
    JobStatsResponse,
)
from jobqueue.types.job import Job, JobPayload
from jobqueue.worker.items import get_work_item, list_work_items

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{API_V1_PREFIX}/jobs", tags=["Jobs"])


def _naive_utc(value: datetime | None) -> datetime | None:
    """Stored timestamps are naive UTC; aware inputs are converted."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _job_to_response(job: Job) -> JobResponse:
    """Convert a Job to a JobResponse, exposing the payload when it is JSON."""
    try:
        envelope = JobPayload.model_validate_json(job.payload)
        job_type, data = envelope.job_type, envelope.data
    except ValidationError:
        job_type, data = None, None

    return JobResponse(
        id=job.id,
        state=job.state,
        job_type=job_type,
        data=data,
        priority=job.priority,
        attempts=job.attempts,
        run_at=job.run_at,
        locked_at=job.locked_at,
        locked_by=job.locked_by,
        failed_at=job.failed_at,
        first_started_at=job.first_started_at,
        last_started_at=job.last_started_at,
        finished_at=job.finished_at,
        last_error=job.last_error,
        created_at=job.created_at,
    )


@router.post(
    "",
    response_model=EnqueueJobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enqueue a job",
    description="Enqueue a registered work item type with its fields.",
)
async def enqueue_job(request: EnqueueJobRequest, queue: QueueDep) -> EnqueueJobResponse:
    """
    Enqueue a new job.

    Args:
        request: Job creation request.
        queue: The job queue.

    Returns:
        EnqueueJobResponse with the job id and schedule.
    """
    cls = get_work_item(request.job_type)
    if cls is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                f"Unknown job type {request.job_type!r}; "
                f"registered types: {', '.join(sorted(list_work_items()))}"
            ),
        )

    try:
        item = cls.model_validate(request.data)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        ) from e

    job = await queue.enqueue(
        item, priority=request.priority, run_at=_naive_utc(request.run_at)
    )

    return EnqueueJobResponse(
        id=job.id,
        job_type=request.job_type,
        priority=job.priority,
        run_at=job.run_at,
    )


@router.get(
    "/stats",
    response_model=JobStatsResponse,
    summary="Job counts",
    description="Count jobs per state: ready, locked, failed, finished and retrying.",
)
async def job_stats(queue: QueueDep) -> JobStatsResponse:
    counts = await queue.counts()
    return JobStatsResponse(**counts.as_dict(), generated_at=utcnow())


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get job details",
    description="Get details of a specific job.",
)
async def get_job(job_id: int, queue: QueueDep) -> JobResponse:
    """
    Get job details by ID.

    Raises:
        HTTPException: If job not found.
    """
    job = await queue.get(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return _job_to_response(job)


@router.delete(
    "",
    response_model=FlushResponse,
    summary="Flush the queue",
    description="Delete every job, whatever its state.",
)
async def flush_jobs(queue: QueueDep) -> FlushResponse:
    deleted = await queue.delete_all()
    return FlushResponse(deleted=deleted)
