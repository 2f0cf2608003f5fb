"""
Candidate selection.

Workers fetch a few more candidates than they need: when another worker wins
the race for the first one, the next is tried without another query.
"""

from collections.abc import Sequence
from datetime import timedelta

from jobqueue.constants import DEFAULT_CANDIDATE_LIMIT, DEFAULT_MAX_RUN_TIME_SECONDS
from jobqueue.store.base import JobStore
from jobqueue.types.job import Job


async def find_available(
    store: JobStore,
    worker_id: str,
    limit: int = DEFAULT_CANDIDATE_LIMIT,
    max_run_time: timedelta = timedelta(seconds=DEFAULT_MAX_RUN_TIME_SECONDS),
    min_priority: int | None = None,
    max_priority: int | None = None,
) -> Sequence[Job]:
    """
    Find jobs this worker may try to lock, highest priority and oldest first.

    Args:
        store: The job store.
        worker_id: Identity of the polling worker; its own locked jobs are included.
        limit: Maximum number of candidates.
        max_run_time: Lease duration used to recognise expired locks.
        min_priority: Inclusive lower priority bound, None for unbounded.
        max_priority: Inclusive upper priority bound, None for unbounded.

    Returns:
        Up to `limit` candidates ordered by priority, then run_at.
    """
    if limit < 1:
        return []
    return await store.fetch_candidates(
        worker_id,
        max_run_time,
        min_priority=min_priority,
        max_priority=max_priority,
        limit=limit,
    )
