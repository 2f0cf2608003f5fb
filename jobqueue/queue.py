"""
Queue facade for producers and operators.

Producers enqueue work items; operators inspect and maintain the queue. Workers
do not go through this class, they use the store directly.
"""

import logging
from datetime import datetime

from jobqueue.constants import DEFAULT_PRIORITY, SPAN_ENQUEUE_JOB
from jobqueue.observability.metrics import get_metrics
from jobqueue.observability.tracing import get_tracer
from jobqueue.store.base import JobStore
from jobqueue.types.job import Job, JobCounts
from jobqueue.worker.codec import JsonPayloadCodec, PayloadCodec
from jobqueue.worker.items import WorkItem

logger = logging.getLogger(__name__)


class JobQueue:
    """Enqueue work items and run administrative operations on a store."""

    def __init__(
        self,
        store: JobStore,
        codec: PayloadCodec | None = None,
        default_priority: int = DEFAULT_PRIORITY,
    ):
        self.store = store
        self.codec = codec or JsonPayloadCodec()
        self.default_priority = default_priority
        self._metrics = get_metrics()

    async def enqueue(
        self,
        item: WorkItem,
        priority: int | None = None,
        run_at: datetime | None = None,
    ) -> Job:
        """
        Add a work item to the queue.

        Args:
            item: The work item; must implement perform().
            priority: Lower runs first; defaults to default_priority.
            run_at: Earliest execution time; defaults to now.

        Returns:
            The created job.

        Raises:
            TypeError: If item is not a work item.
        """
        if not isinstance(item, WorkItem):
            raise TypeError("Cannot enqueue items which do not implement perform()")

        priority = self.default_priority if priority is None else int(priority)

        with get_tracer().start_as_current_span(SPAN_ENQUEUE_JOB) as span:
            payload = self.codec.encode(item)
            job = await self.store.create(payload, priority=priority, run_at=run_at)
            span.set_attribute("job_id", job.id)

        self._metrics.record_job_enqueued(priority)
        return job

    async def get(self, job_id: int) -> Job | None:
        return await self.store.get(job_id)

    async def clear_locks(self, worker_id: str) -> int:
        """Release every lease held by a worker, e.g. after it crashed for good."""
        return await self.store.clear_locks(worker_id)

    async def delete_all(self) -> int:
        """Flush the queue."""
        count = await self.store.delete_all()
        logger.warning("Queue flushed", extra={"deleted": count})
        return count

    async def counts(self) -> JobCounts:
        """Count jobs per state and refresh the queue depth gauges."""
        counts = await self.store.count_by_state()
        self._metrics.update_queue_depth(counts)
        return counts
