"""
API request and response type definitions.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from jobqueue.constants import JobState
from jobqueue.types.job import JobCounts


class EnqueueJobRequest(BaseModel):
    """Request body for enqueueing a registered work item."""

    job_type: str = Field(..., description="Registered work item type")
    data: dict[str, Any] = Field(default_factory=dict, description="Work item fields")
    priority: int | None = Field(
        default=None, description="Lower runs first; defaults to the queue default"
    )
    run_at: datetime | None = Field(
        default=None, description="Earliest execution time (UTC); defaults to now"
    )


class EnqueueJobResponse(BaseModel):
    """Response body after enqueueing a job."""

    id: int
    job_type: str
    priority: int
    run_at: datetime
    message: str = "Job enqueued successfully"


class JobResponse(BaseModel):
    """Full job details response."""

    id: int
    state: JobState
    job_type: str | None
    data: dict[str, Any] | None
    priority: int
    attempts: int
    run_at: datetime | None
    locked_at: datetime | None
    locked_by: str | None
    failed_at: datetime | None
    first_started_at: datetime | None
    last_started_at: datetime | None
    finished_at: datetime | None
    last_error: str | None
    created_at: datetime | None


class JobStatsResponse(JobCounts):
    """Job counts per state."""

    generated_at: datetime


class FlushResponse(BaseModel):
    """Response body after deleting every job."""

    deleted: int


class ClearLocksResponse(BaseModel):
    """Response body after releasing a worker's locks."""

    worker_id: str
    cleared: int


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    store: str
    timestamp: datetime
