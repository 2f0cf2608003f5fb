"""
In-process job store.

Keeps jobs in a dict guarded by an asyncio lock. Useful for tests and for
embedding a queue in a single process; every worker sharing the store must run
on the same event loop.
"""

import asyncio
import itertools
import logging
from collections.abc import Mapping, Sequence
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from jobqueue.clock import Clock, utcnow
from jobqueue.store.base import check_update_fields
from jobqueue.types.job import Job, JobCounts

logger = logging.getLogger(__name__)


class MemoryJobStore:
    """Job store holding rows in memory."""

    name = "memory"

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or utcnow
        self._jobs: dict[int, Job] = {}
        self._ids = itertools.count(1)
        self._lock = asyncio.Lock()

    async def now(self) -> datetime:
        return self._clock()

    async def create(
        self,
        payload: bytes,
        priority: int = 0,
        run_at: datetime | None = None,
    ) -> Job:
        now = self._clock()
        async with self._lock:
            job = Job(
                id=next(self._ids),
                payload=payload,
                priority=priority,
                run_at=run_at or now,
                created_at=now,
                updated_at=now,
            )
            self._jobs[job.id] = job

        logger.info(
            "Created new job",
            extra={"job_id": job.id, "priority": priority, "run_at": str(job.run_at)},
        )
        return replace(job)

    async def get(self, job_id: int) -> Job | None:
        async with self._lock:
            job = self._jobs.get(job_id)
            return replace(job) if job is not None else None

    async def fetch_candidates(
        self,
        worker_id: str,
        max_run_time: timedelta,
        min_priority: int | None = None,
        max_priority: int | None = None,
        limit: int = 5,
    ) -> Sequence[Job]:
        now = self._clock()

        def eligible(job: Job) -> bool:
            if job.failed or job.finished:
                return False
            if min_priority is not None and job.priority < min_priority:
                return False
            if max_priority is not None and job.priority > max_priority:
                return False
            if job.locked_by == worker_id:
                return True
            return job.run_at <= now and job.lock_expired(now, max_run_time)

        async with self._lock:
            candidates = sorted(
                (job for job in self._jobs.values() if eligible(job)),
                key=lambda job: (job.priority, job.run_at, job.id),
            )
            return [replace(job) for job in candidates[:limit]]

    async def try_lock(
        self,
        job_id: int,
        worker_id: str,
        max_run_time: timedelta,
        now: datetime,
        resume: bool = False,
    ) -> bool:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return False

            if resume:
                if job.locked_by != worker_id:
                    return False
            else:
                if not job.lock_expired(now, max_run_time):
                    return False
                if job.run_at > now or job.failed or job.finished:
                    return False
                job.locked_by = worker_id

            job.locked_at = now
            job.last_started_at = now
            if job.first_started_at is None:
                job.first_started_at = now
            job.updated_at = now
            return True

    async def clear_locks(self, worker_id: str) -> int:
        count = 0
        now = self._clock()
        async with self._lock:
            for job in self._jobs.values():
                if job.locked_by == worker_id:
                    job.unlock()
                    job.updated_at = now
                    count += 1

        if count > 0:
            logger.info(
                f"Cleared {count} locks",
                extra={"worker_id": worker_id},
            )
        return count

    async def update(self, job_id: int, fields: Mapping[str, Any]) -> None:
        check_update_fields(fields)
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return
            for key, value in fields.items():
                setattr(job, key, value)
            job.updated_at = self._clock()

    async def delete(self, job_id: int) -> None:
        async with self._lock:
            self._jobs.pop(job_id, None)

    async def delete_all(self) -> int:
        async with self._lock:
            count = len(self._jobs)
            self._jobs.clear()

        logger.info(f"Deleted {count} jobs")
        return count

    async def count_by_state(self) -> JobCounts:
        counts = JobCounts()
        async with self._lock:
            for job in self._jobs.values():
                if job.locked_at is not None:
                    counts.locked += 1
                if job.failed:
                    counts.failed += 1
                if job.finished:
                    counts.finished += 1
                if job.locked_at is None and not job.failed and not job.finished:
                    counts.ready += 1
                    if job.first_started_at is not None:
                        counts.retrying += 1
        return counts

    async def close(self) -> None:
        return None
