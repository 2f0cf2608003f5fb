"""
Type definitions for the job queue.
Contains input/output type definitions shared across modules, grouped by concern.
"""

from jobqueue.types.api import (
    ClearLocksResponse,
    EnqueueJobRequest,
    EnqueueJobResponse,
    FlushResponse,
    HealthResponse,
    JobResponse,
    JobStatsResponse,
)
from jobqueue.types.job import (
    ExecutionResult,
    Job,
    JobCounts,
    JobPayload,
    WorkOffResult,
)

__all__ = [
    # API types
    "EnqueueJobRequest",
    "EnqueueJobResponse",
    "JobResponse",
    "JobStatsResponse",
    "FlushResponse",
    "ClearLocksResponse",
    "HealthResponse",
    # Job types
    "Job",
    "JobPayload",
    "JobCounts",
    "ExecutionResult",
    "WorkOffResult",
]
