"""
Pytest configuration and shared fixtures.
"""

import os
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import model_validator
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

# Keep tests off any real database and collector configured in the environment
os.environ["STORE_BACKEND"] = "memory"
os.environ["TRACING_ENABLED"] = "false"

from jobqueue.api.main import create_app
from jobqueue.config import WorkerConfig
from jobqueue.db.connection import create_schema, get_test_engine, make_session_factory
from jobqueue.queue import JobQueue
from jobqueue.store.memory import MemoryJobStore
from jobqueue.store.sql import SQLAlchemyJobStore
from jobqueue.worker.items import WorkItem, register_work_item

# Side effects recorded by the test work items below
performed: list[str] = []
hook_calls: list[str] = []


@register_work_item("test_record")
class RecordJob(WorkItem):
    """Append its tag to `performed`."""

    tag: str

    async def perform(self) -> None:
        performed.append(self.tag)


@register_work_item("test_own_timeout")
class OwnTimeoutJob(WorkItem):
    """Raises its own TimeoutError well before the job deadline."""

    async def perform(self) -> None:
        raise TimeoutError("upstream socket timed out")


@register_work_item("test_broken_validator")
class BrokenValidatorJob(WorkItem):
    """Fails to load with an error pydantic does not wrap."""

    armed: bool = False

    @model_validator(mode="after")
    def explode(self) -> "BrokenValidatorJob":
        if self.armed:
            raise TypeError("validator blew up")
        return self

    async def perform(self) -> None:
        performed.append("broken")


@register_work_item("test_failing")
class FailingJob(WorkItem):
    """Always raises."""

    reason: str = "did not work"

    async def perform(self) -> None:
        raise RuntimeError(self.reason)


@register_work_item("test_hooked")
class HookedFailingJob(WorkItem):
    """Always raises; records the permanent failure notification."""

    tag: str = "hooked"

    async def perform(self) -> None:
        raise RuntimeError("hooked job failed")

    async def on_permanent_failure(self) -> None:
        hook_calls.append(self.tag)


@register_work_item("test_named")
class NamedJob(WorkItem):
    """Supplies its own display name."""

    async def perform(self) -> None:
        return None

    @property
    def display_name(self) -> str:
        return "custom named job"


class FakeClock:
    """Controllable naive UTC clock."""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


@pytest.fixture(autouse=True)
def reset_side_effects():
    """Clear the side effects recorded by test work items."""
    performed.clear()
    hook_calls.clear()
    yield
    performed.clear()
    hook_calls.clear()


@pytest.fixture
def clock() -> FakeClock:
    """Create a controllable clock."""
    return FakeClock()


@pytest.fixture
def memory_store(clock: FakeClock) -> MemoryJobStore:
    """Create an in-memory store driven by the fake clock."""
    return MemoryJobStore(clock=clock)


@pytest.fixture
def worker_config() -> WorkerConfig:
    """Worker configuration keeping failed and finished jobs for inspection."""
    return WorkerConfig(
        max_attempts=3,
        max_run_time=timedelta(minutes=5),
        sleep_delay=0.01,
        destroy_failed_jobs=False,
        destroy_successful_jobs=False,
    )


@pytest_asyncio.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """Create a file-backed SQLite engine with the jobs table."""
    engine = get_test_engine(f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}")
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to the test engine."""
    return make_session_factory(sqlite_engine)


@pytest.fixture
def sql_store(
    session_factory: async_sessionmaker[AsyncSession],
    clock: FakeClock,
) -> SQLAlchemyJobStore:
    """Create a SQL store driven by the fake clock."""
    return SQLAlchemyJobStore(session_factory, clock=clock)


@pytest.fixture
def queue(memory_store: MemoryJobStore) -> JobQueue:
    """Create a queue over the in-memory store."""
    return JobQueue(memory_store)


@pytest.fixture
def app(queue: JobQueue) -> FastAPI:
    """Create a FastAPI app serving the test queue."""
    return create_app(queue)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    """Create an async HTTP client for testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
