"""
SQLAlchemy database models.
Defines the jobs table used by the SQL store.
"""

from datetime import datetime

from sqlalchemy import (
    DateTime,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from jobqueue.clock import utcnow
from jobqueue.types.job import Job


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class JobModel(Base):
    """
    Job row: the persisted unit of work and its scheduling and lock metadata.

    This is the authoritative source of truth for job state. There is no status
    column; state is derived from the timestamps:
    - locked_at/locked_by are both set while a worker holds the lease
    - failed_at marks a terminal failure kept for inspection
    - finished_at marks a success kept for inspection
    - first_started_at is written once, last_started_at on every lock
    """

    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    # Lower runs first
    priority: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    # Serialized work item, opaque to the store
    payload: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
    )
    last_error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Scheduling
    run_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )

    # Lease
    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )
    locked_by: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        index=True,
    )

    # Outcome tracking
    failed_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )
    first_started_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )
    last_started_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        nullable=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        # Candidate scans order by (priority, run_at)
        Index("ix_jobs_priority_run_at", "priority", "run_at"),
    )

    def to_job(self) -> Job:
        """Detach the row into a plain Job value."""
        return Job(
            id=self.id,
            payload=self.payload,
            priority=self.priority,
            attempts=self.attempts,
            run_at=self.run_at,
            last_error=self.last_error,
            locked_at=self.locked_at,
            locked_by=self.locked_by,
            failed_at=self.failed_at,
            first_started_at=self.first_started_at,
            last_started_at=self.last_started_at,
            finished_at=self.finished_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self) -> str:
        return (
            f"JobModel(id={self.id}, priority={self.priority}, "
            f"attempts={self.attempts}, locked_by={self.locked_by})"
        )
