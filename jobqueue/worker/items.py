"""
Work items and their registry.

A work item is a pydantic model whose fields are everything it needs to run and
whose perform() does the work. Registered types can be stored in the queue by
the JSON payload codec.

Work items must be idempotent: a job may run more than once when a worker
crashes after finishing the work but before recording the outcome.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeVar, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)


class WorkItem(BaseModel):
    """
    Base class for units of work.

    Subclasses implement perform() as a coroutine. Plain functions are
    refused: a thread cannot be interrupted at the max_run_time deadline, so
    it would keep running after its lease was released and another worker
    could pick the same job up. Blocking code must be made cancellable by the
    work item itself.
    """

    model_config = ConfigDict(extra="forbid")

    async def perform(self) -> None:
        raise NotImplementedError


@runtime_checkable
class NamedWorkItem(Protocol):
    """Work item that supplies its own name for logs."""

    @property
    def display_name(self) -> str: ...


@runtime_checkable
class PermanentFailureHook(Protocol):
    """Work item notified once when its job is given up on."""

    def on_permanent_failure(self) -> Awaitable[None] | None: ...


W = TypeVar("W", bound=type[WorkItem])

# Work item registry
_work_items: dict[str, type[WorkItem]] = {}
_job_types: dict[type[WorkItem], str] = {}


def register_work_item(job_type: str) -> Callable[[W], W]:
    """
    Decorator to register a work item type.

    Args:
        job_type: The name stored in job payloads for this type.

    Returns:
        Decorator function.

    Example:
        @register_work_item("send_email")
        class SendEmail(WorkItem):
            to: str

            async def perform(self) -> None:
                ...
    """
    def decorator(cls: W) -> W:
        check_perform(cls)
        _work_items[job_type] = cls
        _job_types[cls] = job_type
        logger.debug(f"Registered work item type: {job_type}")
        return cls
    return decorator


def check_perform(cls: type[WorkItem]) -> None:
    """
    Refuse work item types whose perform() is not a coroutine function.

    Raises:
        TypeError: If perform() is a plain function.
    """
    if not inspect.iscoroutinefunction(cls.perform):
        raise TypeError(
            f"{cls.__name__}.perform must be declared with async def; "
            "blocking work cannot be interrupted at the job deadline"
        )


def get_work_item(job_type: str) -> type[WorkItem] | None:
    """
    Get the work item class registered under a job type.

    Args:
        job_type: The job type.

    Returns:
        The work item class or None if not found.
    """
    return _work_items.get(job_type)


def get_job_type(item: WorkItem) -> str | None:
    """Get the registered job type of a work item instance."""
    return _job_types.get(type(item))


def list_work_items() -> list[str]:
    """List all registered job types."""
    return list(_work_items.keys())


def display_name(item: WorkItem) -> str:
    """Name used for a work item in logs."""
    if isinstance(item, NamedWorkItem):
        return item.display_name
    return get_job_type(item) or type(item).__name__


async def invoke(func: Callable[[], Any]) -> None:
    """
    Call an optional work item hook, sync or async.

    Plain functions run in a thread so they do not block the event loop.
    Hooks run without a deadline; perform() never goes through here.
    """
    if inspect.iscoroutinefunction(func):
        await func()
        return

    result = await asyncio.to_thread(func)
    if inspect.isawaitable(result):
        await result


# ============================================================================
# Built-in work items
# ============================================================================


@register_work_item("echo")
class EchoJob(WorkItem):
    """Log a message. Useful to check a worker is alive."""

    message: str = ""

    async def perform(self) -> None:
        logger.info("Echo job executing", extra={"echo_message": self.message})


@register_work_item("sleep")
class SleepJob(WorkItem):
    """Sleep for a while, for testing delays and deadlines."""

    duration_seconds: float = 1.0

    async def perform(self) -> None:
        logger.info("Sleep job starting", extra={"duration": self.duration_seconds})
        await asyncio.sleep(self.duration_seconds)


@register_work_item("http_request")
class HttpRequestJob(WorkItem):
    """
    Make an HTTP request.

    Non-2xx responses raise, so the job is retried with backoff.
    """

    url: str
    method: str = "GET"
    headers: dict[str, str] = {}
    body: Any = None
    timeout_seconds: float = 30.0

    @property
    def display_name(self) -> str:
        return f"http_request {self.method.upper()} {self.url}"

    async def perform(self) -> None:
        method = self.method.upper()
        async with httpx.AsyncClient() as client:
            response = await client.request(
                method=method,
                url=self.url,
                headers=self.headers,
                json=self.body if method in ["POST", "PUT", "PATCH"] else None,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()

        logger.info(
            "HTTP request job",
            extra={"method": method, "url": self.url, "status_code": response.status_code},
        )
