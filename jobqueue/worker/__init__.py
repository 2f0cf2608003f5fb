"""
Worker module.
Contains the polling worker, work items, payload codecs and the lock/backoff
primitives the worker is built from.
"""

from jobqueue.worker.codec import DeserializationError, JsonPayloadCodec, PayloadCodec
from jobqueue.worker.items import (
    NamedWorkItem,
    PermanentFailureHook,
    WorkItem,
    register_work_item,
)
from jobqueue.worker.main import Worker, run

__all__ = [
    "Worker",
    "run",
    "WorkItem",
    "NamedWorkItem",
    "PermanentFailureHook",
    "register_work_item",
    "PayloadCodec",
    "JsonPayloadCodec",
    "DeserializationError",
]
