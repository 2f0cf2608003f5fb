"""
Store capability interface.

Any backend offering an atomic conditional row update can carry the queue. The
worker only ever talks to this protocol; the concrete store is chosen once at
startup (see jobqueue.store.create_store).
"""

from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from jobqueue.types.job import Job, JobCounts

# Columns a caller holding the lock may overwrite through JobStore.update
UPDATABLE_FIELDS = frozenset(
    {
        "priority",
        "attempts",
        "run_at",
        "last_error",
        "locked_at",
        "locked_by",
        "failed_at",
        "finished_at",
    }
)


def check_update_fields(fields: Mapping[str, Any]) -> None:
    """
    Reject writes to columns the store owns.

    Raises:
        ValueError: If a field is unknown or not writable.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update job fields: {', '.join(sorted(unknown))}")


@runtime_checkable
class JobStore(Protocol):
    """
    Protocol for durable job stores.

    Stores are responsible for:
    - Creating jobs and assigning their ids
    - Returning lockable candidates in priority/age order
    - The atomic conditional update that grants a lease
    - Plain writes for a caller that already holds the lease
    - Supplying the clock every worker compares against
    """

    name: str

    async def now(self) -> datetime:
        """Current time according to the store."""
        ...

    async def create(
        self,
        payload: bytes,
        priority: int = 0,
        run_at: datetime | None = None,
    ) -> Job:
        """
        Persist a new job.

        Args:
            payload: Serialized work item.
            priority: Lower runs first.
            run_at: Earliest execution time; defaults to now.

        Returns:
            The created job with its store-assigned id.
        """
        ...

    async def get(self, job_id: int) -> Job | None:
        """Fetch one job by id."""
        ...

    async def fetch_candidates(
        self,
        worker_id: str,
        max_run_time: timedelta,
        min_priority: int | None = None,
        max_priority: int | None = None,
        limit: int = 5,
    ) -> Sequence[Job]:
        """
        Find jobs this worker may try to lock.

        A candidate is due and unlocked, or holds an expired lease, or is
        already locked by worker_id. Failed and finished jobs are never
        returned. Ordered by priority, then run_at, then id.

        Candidates are not reserved: another worker may lock them first.
        """
        ...

    async def try_lock(
        self,
        job_id: int,
        worker_id: str,
        max_run_time: timedelta,
        now: datetime,
        resume: bool = False,
    ) -> bool:
        """
        Atomically grant the lease on a job to worker_id.

        Args:
            job_id: The job to lock.
            worker_id: The worker identity taking the lease.
            max_run_time: Lease duration; older locks are considered expired.
            now: Timestamp obtained from now() for this attempt.
            resume: The caller believes it already holds the lease.

        Returns:
            True iff exactly one row was updated.
        """
        ...

    async def clear_locks(self, worker_id: str) -> int:
        """Release every lease held by worker_id. Returns the number released."""
        ...

    async def update(self, job_id: int, fields: Mapping[str, Any]) -> None:
        """Overwrite fields of a job the caller holds the lease on."""
        ...

    async def delete(self, job_id: int) -> None:
        """Remove a job."""
        ...

    async def delete_all(self) -> int:
        """Remove every job. Returns the number removed."""
        ...

    async def count_by_state(self) -> JobCounts:
        """Count jobs per derived state."""
        ...

    async def close(self) -> None:
        """Release backend resources."""
        ...
