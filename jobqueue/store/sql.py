"""
SQL job store.
Implements the store protocol on top of SQLAlchemy's async ORM.
"""

import logging
from collections.abc import AsyncGenerator, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobqueue.clock import Clock, utcnow
from jobqueue.db.models import JobModel
from jobqueue.store.base import check_update_fields
from jobqueue.types.job import Job, JobCounts

logger = logging.getLogger(__name__)


class SQLAlchemyJobStore:
    """
    Job store backed by a relational database.

    Every operation runs in its own short transaction so that a lease granted
    by try_lock is visible to other workers as soon as the call returns.
    Mutual exclusion rests entirely on the conditional UPDATE in try_lock:
    whichever worker's statement matches the row first wins, every other
    statement matches zero rows.
    """

    name = "sql"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Clock | None = None,
    ):
        """
        Initialize the store with a session factory.

        Args:
            session_factory: Factory producing async sessions.
            clock: Time source. When omitted, PostgreSQL's clock is used so all
                workers agree on "now"; other databases fall back to UTC
                wall-clock time of this host.
        """
        self._session_factory = session_factory
        self._clock = clock
        bind = session_factory.kw.get("bind")
        dialect = getattr(bind, "dialect", None)
        self._database_clock = clock is None and getattr(dialect, "name", None) == "postgresql"

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession]:
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        if not self._database_clock:
            return utcnow()

        async with self._session() as session:
            result = await session.execute(select(func.now()))
            value = result.scalar_one()
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    async def create(
        self,
        payload: bytes,
        priority: int = 0,
        run_at: datetime | None = None,
    ) -> Job:
        now = await self.now()
        async with self._session() as session:
            row = JobModel(
                payload=payload,
                priority=priority,
                attempts=0,
                run_at=run_at or now,
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            await session.flush()
            job = row.to_job()

        logger.info(
            "Created new job",
            extra={"job_id": job.id, "priority": priority, "run_at": str(job.run_at)},
        )
        return job

    async def get(self, job_id: int) -> Job | None:
        async with self._session() as session:
            row = await session.get(JobModel, job_id)
            return row.to_job() if row is not None else None

    async def fetch_candidates(
        self,
        worker_id: str,
        max_run_time: timedelta,
        min_priority: int | None = None,
        max_priority: int | None = None,
        limit: int = 5,
    ) -> Sequence[Job]:
        now = await self.now()
        expired_before = now - max_run_time

        filters = [
            or_(
                and_(
                    JobModel.run_at <= now,
                    or_(
                        JobModel.locked_at.is_(None),
                        JobModel.locked_at <= expired_before,
                    ),
                ),
                JobModel.locked_by == worker_id,
            ),
            JobModel.failed_at.is_(None),
            JobModel.finished_at.is_(None),
        ]
        if min_priority is not None:
            filters.append(JobModel.priority >= min_priority)
        if max_priority is not None:
            filters.append(JobModel.priority <= max_priority)

        stmt = (
            select(JobModel)
            .where(and_(*filters))
            .order_by(JobModel.priority.asc(), JobModel.run_at.asc(), JobModel.id.asc())
            .limit(limit)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return [row.to_job() for row in result.scalars().all()]

    async def try_lock(
        self,
        job_id: int,
        worker_id: str,
        max_run_time: timedelta,
        now: datetime,
        resume: bool = False,
    ) -> bool:
        values: dict[str, Any] = {
            "locked_at": now,
            "last_started_at": now,
            # Set once, even when the caller's view of the row is stale
            "first_started_at": func.coalesce(JobModel.first_started_at, now),
            "updated_at": now,
        }

        if resume:
            # Crash recovery: run_at is deliberately not re-checked
            criteria = and_(
                JobModel.id == job_id,
                JobModel.locked_by == worker_id,
            )
        else:
            criteria = and_(
                JobModel.id == job_id,
                or_(
                    JobModel.locked_at.is_(None),
                    JobModel.locked_at <= now - max_run_time,
                ),
                JobModel.run_at <= now,
                JobModel.failed_at.is_(None),
                JobModel.finished_at.is_(None),
            )
            values["locked_by"] = worker_id

        stmt = (
            update(JobModel)
            .where(criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            return result.rowcount == 1

    async def clear_locks(self, worker_id: str) -> int:
        stmt = (
            update(JobModel)
            .where(JobModel.locked_by == worker_id)
            .values(locked_by=None, locked_at=None, updated_at=await self.now())
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            result = await session.execute(stmt)
            count = result.rowcount

        if count > 0:
            logger.info(
                f"Cleared {count} locks",
                extra={"worker_id": worker_id},
            )
        return count

    async def update(self, job_id: int, fields: Mapping[str, Any]) -> None:
        check_update_fields(fields)
        if not fields:
            return
        stmt = (
            update(JobModel)
            .where(JobModel.id == job_id)
            .values(**fields, updated_at=await self.now())
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            await session.execute(stmt)

    async def delete(self, job_id: int) -> None:
        stmt = (
            delete(JobModel)
            .where(JobModel.id == job_id)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as session:
            await session.execute(stmt)

    async def delete_all(self) -> int:
        stmt = delete(JobModel).execution_options(synchronize_session=False)
        async with self._session() as session:
            result = await session.execute(stmt)
            count = result.rowcount

        logger.info(f"Deleted {count} jobs")
        return count

    async def count_by_state(self) -> JobCounts:
        """
        Count jobs per derived state in a single scan.

        Returns:
            JobCounts with one field per state.
        """
        pending = and_(
            JobModel.locked_at.is_(None),
            JobModel.failed_at.is_(None),
            JobModel.finished_at.is_(None),
        )

        def count_where(condition: Any) -> Any:
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        stmt = select(
            count_where(pending).label("ready"),
            count_where(JobModel.locked_at.is_not(None)).label("locked"),
            count_where(JobModel.failed_at.is_not(None)).label("failed"),
            count_where(JobModel.finished_at.is_not(None)).label("finished"),
            count_where(and_(pending, JobModel.first_started_at.is_not(None))).label("retrying"),
        )
        async with self._session() as session:
            row = (await session.execute(stmt)).one()

        return JobCounts(
            ready=row.ready,
            locked=row.locked,
            failed=row.failed,
            finished=row.finished,
            retrying=row.retrying,
        )

    async def close(self) -> None:
        """Sessions are per-operation; the engine is owned by jobqueue.db.connection."""
        return None
