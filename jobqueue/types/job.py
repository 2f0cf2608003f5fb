"""
Job-related type definitions for internal use.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from pydantic import BaseModel

from jobqueue.constants import ExecutionOutcome, JobState


@dataclass
class Job:
    """
    Backend-agnostic view of one row of the job table.

    Stores hand out copies: mutating a Job never changes persisted state until it
    is written back through the store.
    """

    id: int
    payload: bytes
    priority: int = 0
    attempts: int = 0
    run_at: datetime | None = None
    last_error: str | None = None
    locked_at: datetime | None = None
    locked_by: str | None = None
    failed_at: datetime | None = None
    first_started_at: datetime | None = None
    last_started_at: datetime | None = None
    finished_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_locked(self) -> bool:
        return self.locked_by is not None

    @property
    def failed(self) -> bool:
        """A failed job is terminal and is never locked or scheduled again."""
        return self.failed_at is not None

    @property
    def finished(self) -> bool:
        return self.finished_at is not None

    @property
    def state(self) -> JobState:
        """Derived state; terminal timestamps win over a stale lock."""
        if self.failed:
            return JobState.FAILED
        if self.finished:
            return JobState.FINISHED
        if self.is_locked:
            return JobState.LOCKED
        if self.first_started_at is not None:
            return JobState.RETRYING
        return JobState.READY

    def lock_expired(self, now: datetime, max_run_time: timedelta) -> bool:
        """Check whether the current lease can be taken over by another worker."""
        if self.locked_at is None:
            return True
        return self.locked_at <= now - max_run_time

    def unlock(self) -> None:
        """Release the lease in memory (not persisted)."""
        self.locked_at = None
        self.locked_by = None


@dataclass
class ExecutionResult:
    """
    Result of one execution attempt.

    The worker decides between completing, rescheduling and removing a job from
    the outcome alone; no exception crosses that boundary.
    """

    outcome: ExecutionOutcome
    error: str | None = None
    duration_seconds: float = 0.0

    @classmethod
    def succeeded(cls, duration_seconds: float = 0.0) -> "ExecutionResult":
        return cls(ExecutionOutcome.SUCCEEDED, duration_seconds=duration_seconds)

    @classmethod
    def retryable(cls, error: str, duration_seconds: float = 0.0) -> "ExecutionResult":
        return cls(ExecutionOutcome.RETRYABLE, error, duration_seconds)

    @classmethod
    def terminal(cls, error: str, duration_seconds: float = 0.0) -> "ExecutionResult":
        return cls(ExecutionOutcome.TERMINAL, error, duration_seconds)

    @property
    def success(self) -> bool:
        return self.outcome is ExecutionOutcome.SUCCEEDED

    @property
    def force_terminal(self) -> bool:
        return self.outcome is ExecutionOutcome.TERMINAL


@dataclass
class WorkOffResult:
    """Success and failure counts for one wake cycle of a worker."""

    success: int = 0
    failure: int = 0

    @property
    def total(self) -> int:
        return self.success + self.failure


class JobCounts(BaseModel):
    """
    Number of jobs per derived state.
    Used for operational inspection and the queue depth gauge.
    """

    ready: int = 0
    locked: int = 0
    failed: int = 0
    finished: int = 0
    retrying: int = 0

    def as_dict(self) -> dict[str, int]:
        return self.model_dump()


class JobPayload(BaseModel):
    """
    Envelope stored in the payload column by the JSON codec.
    Names the registered work item type and carries its fields.
    """

    job_type: str
    data: dict[str, Any] = {}
