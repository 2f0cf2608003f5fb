"""
Unit tests for the in-memory job store.
"""

from datetime import timedelta

import pytest

from jobqueue.store.base import JobStore
from jobqueue.store.memory import MemoryJobStore

MAX_RUN_TIME = timedelta(hours=4)


class TestMemoryJobStore:
    """Tests for MemoryJobStore."""

    def test_satisfies_store_protocol(self, memory_store: MemoryJobStore):
        assert isinstance(memory_store, JobStore)

    async def test_create_defaults(self, memory_store: MemoryJobStore, clock):
        """A new job is due now, unlocked and unattempted."""
        job = await memory_store.create(b"payload")

        assert job.id == 1
        assert job.payload == b"payload"
        assert job.priority == 0
        assert job.attempts == 0
        assert job.run_at == clock()
        assert job.locked_at is None
        assert job.locked_by is None
        assert job.first_started_at is None
        assert job.created_at == clock()

    async def test_ids_increase(self, memory_store: MemoryJobStore):
        first = await memory_store.create(b"a")
        second = await memory_store.create(b"b")

        assert second.id > first.id

    async def test_get_returns_copy(self, memory_store: MemoryJobStore):
        """Mutating a returned job does not change the stored row."""
        job = await memory_store.create(b"a")
        job.attempts = 10

        stored = await memory_store.get(job.id)
        assert stored.attempts == 0

    async def test_get_missing(self, memory_store: MemoryJobStore):
        assert await memory_store.get(42) is None

    async def test_candidates_exclude_future_jobs(self, memory_store: MemoryJobStore, clock):
        await memory_store.create(b"later", run_at=clock() + timedelta(minutes=1))
        due = await memory_store.create(b"now")

        candidates = await memory_store.fetch_candidates("w1", MAX_RUN_TIME)

        assert [job.id for job in candidates] == [due.id]

    async def test_candidates_ordered_by_priority_then_run_at(
        self, memory_store: MemoryJobStore, clock
    ):
        late = await memory_store.create(b"a", priority=0)
        early = await memory_store.create(b"b", priority=0, run_at=clock() - timedelta(minutes=5))
        urgent = await memory_store.create(b"c", priority=-1)

        candidates = await memory_store.fetch_candidates("w1", MAX_RUN_TIME)

        assert [job.id for job in candidates] == [urgent.id, early.id, late.id]

    async def test_candidates_respect_limit(self, memory_store: MemoryJobStore):
        for _ in range(7):
            await memory_store.create(b"x")

        candidates = await memory_store.fetch_candidates("w1", MAX_RUN_TIME, limit=5)

        assert len(candidates) == 5

    async def test_candidates_priority_bounds_are_inclusive(self, memory_store: MemoryJobStore):
        for priority in (10, -10, 0, 5, -5):
            await memory_store.create(b"x", priority=priority)

        candidates = await memory_store.fetch_candidates(
            "w1", MAX_RUN_TIME, min_priority=-5, max_priority=5
        )

        assert [job.priority for job in candidates] == [-5, 0, 5]

    async def test_candidates_exclude_failed_and_finished(
        self, memory_store: MemoryJobStore, clock
    ):
        failed = await memory_store.create(b"f")
        finished = await memory_store.create(b"d")
        await memory_store.update(failed.id, {"failed_at": clock()})
        await memory_store.update(finished.id, {"finished_at": clock()})

        assert await memory_store.fetch_candidates("w1", MAX_RUN_TIME) == []

    async def test_try_lock_sets_lease(self, memory_store: MemoryJobStore, clock):
        job = await memory_store.create(b"x")

        assert await memory_store.try_lock(job.id, "w1", MAX_RUN_TIME, clock())

        locked = await memory_store.get(job.id)
        assert locked.locked_by == "w1"
        assert locked.locked_at == clock()
        assert locked.first_started_at == clock()
        assert locked.last_started_at == clock()

    async def test_try_lock_held_by_other_worker_fails(
        self, memory_store: MemoryJobStore, clock
    ):
        job = await memory_store.create(b"x")
        assert await memory_store.try_lock(job.id, "w1", MAX_RUN_TIME, clock())

        assert not await memory_store.try_lock(job.id, "w2", MAX_RUN_TIME, clock())
        assert (await memory_store.get(job.id)).locked_by == "w1"

    async def test_try_lock_missing_job(self, memory_store: MemoryJobStore, clock):
        assert not await memory_store.try_lock(99, "w1", MAX_RUN_TIME, clock())

    async def test_clear_locks_only_releases_own(self, memory_store: MemoryJobStore, clock):
        mine = await memory_store.create(b"a")
        theirs = await memory_store.create(b"b")
        await memory_store.try_lock(mine.id, "w1", MAX_RUN_TIME, clock())
        await memory_store.try_lock(theirs.id, "w2", MAX_RUN_TIME, clock())

        clock.advance(seconds=30)
        assert await memory_store.clear_locks("w1") == 1

        assert (await memory_store.get(mine.id)).locked_by is None
        assert (await memory_store.get(mine.id)).locked_at is None
        assert (await memory_store.get(mine.id)).updated_at == clock()
        assert (await memory_store.get(theirs.id)).locked_by == "w2"

    async def test_update_rejects_unknown_fields(self, memory_store: MemoryJobStore):
        job = await memory_store.create(b"x")

        with pytest.raises(ValueError):
            await memory_store.update(job.id, {"payload": b"other"})

    async def test_update_touches_updated_at(self, memory_store: MemoryJobStore, clock):
        job = await memory_store.create(b"x")
        clock.advance(seconds=30)

        await memory_store.update(job.id, {"priority": 3})

        updated = await memory_store.get(job.id)
        assert updated.priority == 3
        assert updated.updated_at == clock()

    async def test_delete_and_delete_all(self, memory_store: MemoryJobStore):
        first = await memory_store.create(b"a")
        await memory_store.create(b"b")
        await memory_store.create(b"c")

        await memory_store.delete(first.id)
        assert await memory_store.get(first.id) is None

        assert await memory_store.delete_all() == 2
        assert await memory_store.fetch_candidates("w1", MAX_RUN_TIME) == []

    async def test_count_by_state(self, memory_store: MemoryJobStore, clock):
        await memory_store.create(b"ready")
        locked = await memory_store.create(b"locked")
        retrying = await memory_store.create(b"retrying")
        failed = await memory_store.create(b"failed")
        finished = await memory_store.create(b"finished")

        await memory_store.try_lock(locked.id, "w1", MAX_RUN_TIME, clock())
        await memory_store.try_lock(retrying.id, "w1", MAX_RUN_TIME, clock())
        await memory_store.update(retrying.id, {"locked_at": None, "locked_by": None})
        await memory_store.update(failed.id, {"failed_at": clock()})
        await memory_store.update(finished.id, {"finished_at": clock()})

        counts = await memory_store.count_by_state()

        assert counts.ready == 2
        assert counts.retrying == 1
        assert counts.locked == 1
        assert counts.failed == 1
        assert counts.finished == 1
