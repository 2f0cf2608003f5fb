"""
Worker process for executing jobs.

The worker polls the store for candidates, races other workers for the lease on
one of them, runs it under a deadline and writes the outcome back: completed,
rescheduled with backoff, or permanently failed.
"""

import asyncio
import logging
import os
import signal
import socket
import time
import traceback

from jobqueue.config import WorkerConfig, get_settings
from jobqueue.constants import (
    EXPIRED_ERROR_MESSAGE,
    SPAN_EXECUTE_JOB,
    UNDECODABLE_JOB_NAME,
)
from jobqueue.db import close_db, get_engine, init_db
from jobqueue.observability.logging import bind_context, clear_context, setup_logging
from jobqueue.observability.metrics import get_metrics
from jobqueue.observability.tracing import get_tracer, instrument_sqlalchemy
from jobqueue.store import JobStore, create_store
from jobqueue.types.job import ExecutionResult, Job, WorkOffResult
from jobqueue.worker.backoff import is_exhausted, next_run_at
from jobqueue.worker.codec import JsonPayloadCodec, PayloadCodec
from jobqueue.worker.items import (
    PermanentFailureHook,
    WorkItem,
    check_perform,
    display_name,
    invoke,
)
from jobqueue.worker.locking import lock_exclusively
from jobqueue.worker.selector import find_available

logger = logging.getLogger(__name__)


def format_error(error: BaseException) -> str:
    """Error message followed by its traceback, as stored in last_error."""
    trace = "".join(traceback.format_tb(error.__traceback__))
    return f"{type(error).__name__}: {error}\n{trace}"


class Worker:
    """
    Job worker that polls for and executes jobs, one at a time.

    Features:
    - Exclusive locking through a single conditional update per candidate
    - Execution deadline equal to the lease duration (max_run_time)
    - Exponential backoff on failure, terminal path after max_attempts
    - Graceful shutdown: the in-flight job finishes, then locks are released
    """

    def __init__(
        self,
        store: JobStore,
        codec: PayloadCodec | None = None,
        config: WorkerConfig | None = None,
        name: str | None = None,
        name_prefix: str = "",
        stop_event: asyncio.Event | None = None,
    ):
        """
        Initialize the worker.

        Args:
            store: The job store shared with other workers.
            codec: Payload codec. Defaults to the JSON codec.
            config: Worker tunables. Defaults to WorkerConfig().
            name: Worker identity. A name that survives restarts lets the
                worker resume jobs it held when it crashed.
            name_prefix: Prepended to the default host/pid name; ignored when
                name is set.
            stop_event: Cancellation token; setting it stops the outer loop.
        """
        self.store = store
        self.codec = codec or JsonPayloadCodec()
        self.config = config or WorkerConfig()
        self.name_prefix = name_prefix
        self._name = name
        self._stop_event = stop_event or asyncio.Event()
        self._metrics = get_metrics()

    @property
    def name(self) -> str:
        """Worker identity written to locked_by."""
        if self._name is not None:
            return self._name
        return f"{self.name_prefix}host:{socket.gethostname()} pid:{os.getpid()}"

    @name.setter
    def name(self, value: str | None) -> None:
        # None restores the default host/pid name
        self._name = value

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the worker to stop after the job it is running."""
        logger.info("Worker stopping", extra={"worker_id": self.name})
        self._stop_event.set()

    async def start(self) -> None:
        """
        Run the polling loop until stop() is called.

        Locks still held under this worker's name are cleared on the way out,
        whatever the reason for leaving the loop.
        """
        logger.info(
            "Worker starting",
            extra={
                "worker_id": self.name,
                "min_priority": self.config.min_priority,
                "max_priority": self.config.max_priority,
            },
        )
        bind_context(worker_id=self.name)

        try:
            while not self.stopping:
                started = time.perf_counter()
                try:
                    result = await self.work_off()
                except Exception as e:
                    logger.exception(f"Error in worker loop: {e}")
                    result = WorkOffResult()
                elapsed = time.perf_counter() - started

                if self.stopping:
                    break

                if result.total == 0:
                    await self._sleep(self.config.sleep_delay)
                else:
                    logger.info(
                        f"{result.total} jobs processed at {result.total / elapsed:.4f} j/s, "
                        f"{result.failure} failed",
                        extra={"success": result.success, "failure": result.failure},
                    )
        finally:
            await self._release_locks()
            logger.info("Worker stopped", extra={"worker_id": self.name})
            clear_context()

    async def work_off(self, num: int | None = None) -> WorkOffResult:
        """
        Run up to `num` jobs and return success/failure counts.

        Stops early when no job could be locked or when shutdown is requested.

        Args:
            num: Maximum number of jobs; defaults to config.batch_size.
        """
        limit = self.config.batch_size if num is None else num
        result = WorkOffResult()

        for _ in range(limit):
            outcome = await self.reserve_and_run_one_job()
            if outcome is None:
                break
            if outcome:
                result.success += 1
            else:
                result.failure += 1
            if self.stopping:
                break

        return result

    async def reserve_and_run_one_job(self) -> bool | None:
        """
        Lock the first available candidate and run it.

        Returns:
            True on success, False on failure, None if no job could be locked.
        """
        candidates = await find_available(
            self.store,
            self.name,
            limit=self.config.candidate_limit,
            max_run_time=self.config.max_run_time,
            min_priority=self.config.min_priority,
            max_priority=self.config.max_priority,
        )

        for job in candidates:
            if await lock_exclusively(self.store, job, self.name, self.config.max_run_time):
                self._metrics.record_lock_acquired(self.name)
                logger.info(
                    "Acquired lock",
                    extra={"job_id": job.id, "job_name": self.job_name(job)},
                )
                return await self.run(job)

            self._metrics.record_lock_contention(self.name)
            logger.debug(
                "Failed to acquire exclusive lock",
                extra={"job_id": job.id},
            )

        return None

    async def run(self, job: Job) -> bool:
        """
        Execute a locked job and record the outcome.

        Never raises: a failure to write the outcome is logged and reported
        as a failed job.

        Args:
            job: A job this worker holds the lock on.

        Returns:
            True if the job succeeded.
        """
        result = await self.execute(job)

        try:
            if result.success:
                await self._complete(job)
                logger.info(
                    f"Job completed after {result.duration_seconds:.4f}s",
                    extra={"job_id": job.id, "job_name": self.job_name(job)},
                )
            else:
                logger.error(
                    f"Job failed - {job.attempts} failed attempts",
                    extra={
                        "job_id": job.id,
                        "job_name": self.job_name(job),
                        "error": result.error.splitlines()[0] if result.error else None,
                        "terminal": result.force_terminal,
                    },
                )
                await self.reschedule(job, result.error, force_terminal=result.force_terminal)
        except Exception:
            logger.exception("Failed to record job outcome", extra={"job_id": job.id})
            return False
        finally:
            self._metrics.record_job_completed(result.outcome.value, result.duration_seconds)

        return result.success

    async def execute(self, job: Job) -> ExecutionResult:
        """
        Invoke the job's work item under the max_run_time deadline.

        Counts the attempt before anything else so that every execution,
        including one whose payload cannot be decoded, increments attempts.

        Returns:
            ExecutionResult classifying the attempt.
        """
        started = time.perf_counter()
        job.attempts += 1
        timeout = self.config.max_run_time.total_seconds()

        with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
            span.set_attribute("job_id", job.id)
            span.set_attribute("attempt", job.attempts)

            # Any failure to load the work item is terminal, not only the codec's own error
            try:
                item = self.codec.decode(job.payload)
                check_perform(type(item))
            except Exception as e:
                span.record_exception(e)
                return ExecutionResult.terminal(format_error(e), time.perf_counter() - started)

            deadline = asyncio.timeout(timeout)
            try:
                async with deadline:
                    await item.perform()
            except TimeoutError as e:
                if not deadline.expired():
                    # Raised by the work item itself
                    span.record_exception(e)
                    return ExecutionResult.retryable(
                        format_error(e), time.perf_counter() - started
                    )
                span.set_attribute("expired", True)
                return ExecutionResult.retryable(
                    f"{EXPIRED_ERROR_MESSAGE} after {timeout:g}s",
                    time.perf_counter() - started,
                )
            except Exception as e:
                span.record_exception(e)
                return ExecutionResult.retryable(format_error(e), time.perf_counter() - started)

        return ExecutionResult.succeeded(time.perf_counter() - started)

    async def reschedule(
        self,
        job: Job,
        error: str | None = None,
        force_terminal: bool = False,
    ) -> None:
        """
        Apply a failure to a job: retry later with backoff, or give up on it.

        Args:
            job: The failed job, attempts already counted.
            error: Message and trace to record in last_error.
            force_terminal: Skip retries regardless of attempts.
        """
        if error is not None:
            job.last_error = error

        if not force_terminal and not is_exhausted(job.attempts, self.config.max_attempts):
            await self._schedule(job)
        else:
            await self._remove(job)

    def job_name(self, job: Job) -> str:
        """Display name of a job's work item, for logs."""
        item = self._load(job)
        return display_name(item) if item is not None else UNDECODABLE_JOB_NAME

    def _load(self, job: Job) -> WorkItem | None:
        try:
            return self.codec.decode(job.payload)
        except Exception:
            return None

    async def _complete(self, job: Job) -> None:
        if self.config.destroy_successful_jobs:
            await self.store.delete(job.id)
            return

        now = await self.store.now()
        job.finished_at = now
        job.failed_at = None
        job.unlock()
        fields = {
            "attempts": job.attempts,
            "finished_at": now,
            "failed_at": None,
            "locked_at": None,
            "locked_by": None,
        }
        if self.config.clear_successful_errors:
            job.last_error = None
            fields["last_error"] = None
        await self.store.update(job.id, fields)

    async def _schedule(self, job: Job) -> None:
        now = await self.store.now()
        job.run_at = next_run_at(now, job.attempts)
        job.unlock()
        await self.store.update(
            job.id,
            {
                "attempts": job.attempts,
                "run_at": job.run_at,
                "last_error": job.last_error,
                "locked_at": None,
                "locked_by": None,
            },
        )
        logger.info(
            "Job rescheduled",
            extra={"job_id": job.id, "attempt": job.attempts, "run_at": str(job.run_at)},
        )

    async def _remove(self, job: Job) -> None:
        logger.info(
            f"PERMANENTLY removing {self.job_name(job)} because of "
            f"{job.attempts} consecutive failures",
            extra={"job_id": job.id},
        )
        await self._notify_permanent_failure(job)

        if self.config.destroy_failed_jobs:
            await self.store.delete(job.id)
            return

        now = await self.store.now()
        job.failed_at = now
        job.finished_at = None
        job.unlock()
        await self.store.update(
            job.id,
            {
                "attempts": job.attempts,
                "last_error": job.last_error,
                "failed_at": now,
                "finished_at": None,
                "locked_at": None,
                "locked_by": None,
            },
        )

    async def _notify_permanent_failure(self, job: Job) -> None:
        item = self._load(job)
        if not isinstance(item, PermanentFailureHook):
            return
        try:
            await invoke(item.on_permanent_failure)
        except Exception:
            logger.exception(
                "Permanent failure hook raised",
                extra={"job_id": job.id},
            )

    async def _sleep(self, seconds: float) -> None:
        # Wakes early when stop() is called
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except TimeoutError:
            pass

    async def _release_locks(self) -> None:
        try:
            await self.store.clear_locks(self.name)
        except Exception:
            logger.exception("Failed to clear locks", extra={"worker_id": self.name})


async def run_async() -> None:
    """Run a worker configured from the environment."""
    setup_logging()
    settings = get_settings()

    if settings.store_backend == "sql":
        await init_db()
        instrument_sqlalchemy(get_engine())

    store = create_store(settings)
    worker = Worker(
        store,
        config=WorkerConfig.from_settings(settings),
        name=settings.worker_name,
        name_prefix=settings.worker_name_prefix,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.start()
    finally:
        await store.close()
        await close_db()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
