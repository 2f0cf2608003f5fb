"""
Payload codecs.

The store keeps a job's work item as opaque bytes; a codec turns a work item into
those bytes and back.
"""

from typing import Protocol

from pydantic import ValidationError

from jobqueue.types.job import JobPayload
from jobqueue.worker.items import WorkItem, get_job_type, get_work_item


class DeserializationError(Exception):
    """
    A stored payload cannot be turned back into a work item.

    Retrying never fixes this, so the worker sends such jobs straight to the
    terminal path.
    """


class PayloadCodec(Protocol):
    """Serialize work items to bytes and back."""

    def encode(self, item: WorkItem) -> bytes:
        ...

    def decode(self, payload: bytes) -> WorkItem:
        """
        Raises:
            DeserializationError: If the payload cannot be loaded.
        """
        ...


class JsonPayloadCodec:
    """
    JSON codec for registered work items.

    Payloads look like {"job_type": "echo", "data": {"message": "hi"}}.
    """

    def encode(self, item: WorkItem) -> bytes:
        """
        Encode a registered work item.

        Raises:
            TypeError: If the work item's class is not registered.
        """
        job_type = get_job_type(item)
        if job_type is None:
            raise TypeError(
                f"{type(item).__name__} is not a registered work item; "
                "decorate it with @register_work_item"
            )
        envelope = JobPayload(job_type=job_type, data=item.model_dump(mode="json"))
        return envelope.model_dump_json().encode("utf-8")

    def decode(self, payload: bytes) -> WorkItem:
        try:
            envelope = JobPayload.model_validate_json(payload)
        except ValidationError as e:
            raise DeserializationError(f"Job failed to load: invalid payload: {e}") from e

        cls = get_work_item(envelope.job_type)
        if cls is None:
            raise DeserializationError(
                f"Job failed to load: unknown work item type {envelope.job_type!r}"
            )

        try:
            return cls.model_validate(envelope.data)
        except ValidationError as e:
            raise DeserializationError(
                f"Job failed to load: invalid {envelope.job_type!r} data: {e}"
            ) from e
