"""
Unit tests for the queue facade.
"""

from datetime import timedelta

import pytest

from conftest import RecordJob
from jobqueue.queue import JobQueue
from jobqueue.store.memory import MemoryJobStore
from jobqueue.worker.items import WorkItem


class TestJobQueue:
    """Tests for JobQueue."""

    async def test_enqueue_defaults(self, queue: JobQueue, clock):
        job = await queue.enqueue(RecordJob(tag="a"))

        assert job.priority == 0
        assert job.run_at == clock()
        assert job.attempts == 0
        assert queue.codec.decode(job.payload) == RecordJob(tag="a")

    async def test_enqueue_priority_and_run_at(self, queue: JobQueue, clock):
        later = clock() + timedelta(hours=1)

        job = await queue.enqueue(RecordJob(tag="a"), priority=-3, run_at=later)

        assert job.priority == -3
        assert job.run_at == later

    async def test_default_priority(self, memory_store: MemoryJobStore):
        queue = JobQueue(memory_store, default_priority=7)

        job = await queue.enqueue(RecordJob(tag="a"))

        assert job.priority == 7

    async def test_enqueue_rejects_non_work_items(self, queue: JobQueue):
        with pytest.raises(TypeError, match="perform"):
            await queue.enqueue({"job_type": "echo"})

    async def test_enqueue_rejects_unregistered_items(self, queue: JobQueue):
        class Adhoc(WorkItem):
            async def perform(self) -> None:
                return None

        with pytest.raises(TypeError):
            await queue.enqueue(Adhoc())

    async def test_counts_and_flush(self, queue: JobQueue):
        await queue.enqueue(RecordJob(tag="a"))
        await queue.enqueue(RecordJob(tag="b"))

        assert (await queue.counts()).ready == 2
        assert await queue.delete_all() == 2
        assert (await queue.counts()).ready == 0

    async def test_clear_locks(self, queue: JobQueue, memory_store: MemoryJobStore, clock):
        job = await queue.enqueue(RecordJob(tag="a"))
        await memory_store.try_lock(job.id, "gone", timedelta(hours=4), clock())

        assert await queue.clear_locks("gone") == 1
        assert await queue.clear_locks("gone") == 0
