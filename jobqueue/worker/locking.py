"""
Exclusive job locking.

A lease is granted by one conditional update in the store. Losing the race is
not an error: the caller simply moves on to the next candidate.
"""

import logging
from datetime import timedelta

from jobqueue.constants import SPAN_ACQUIRE_LOCK
from jobqueue.observability.tracing import get_tracer
from jobqueue.store.base import JobStore
from jobqueue.types.job import Job

logger = logging.getLogger(__name__)


async def lock_exclusively(
    store: JobStore,
    job: Job,
    worker_id: str,
    max_run_time: timedelta,
) -> bool:
    """
    Try to take the lease on a candidate job.

    A worker that already holds the lease (restarted under the same name)
    resumes it without the run_at check. On success the in-memory job is
    updated to match what was written.

    Args:
        store: The job store.
        job: Candidate returned by the selector.
        worker_id: Identity of the worker taking the lease.
        max_run_time: Lease duration.

    Returns:
        True if this worker now holds the job exclusively.
    """
    with get_tracer().start_as_current_span(SPAN_ACQUIRE_LOCK) as span:
        span.set_attribute("job_id", job.id)
        span.set_attribute("worker_id", worker_id)

        now = await store.now()
        resume = job.locked_by == worker_id
        locked = await store.try_lock(job.id, worker_id, max_run_time, now, resume=resume)
        span.set_attribute("locked", locked)

    if not locked:
        return False

    job.locked_at = now
    job.locked_by = worker_id
    job.last_started_at = now
    if job.first_started_at is None:
        job.first_started_at = now
    return True
