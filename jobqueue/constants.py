"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobState(StrEnum):
    """
    Derived job states used for operational counts.

    A job row carries no status column; its state follows from its timestamps:
    - READY: unlocked, not failed, not finished
    - LOCKED: locked_at/locked_by set (lease may have expired)
    - FAILED: failed_at set (terminal, retained)
    - FINISHED: finished_at set (succeeded, retained)
    - RETRYING: ready jobs that have already been started at least once
    """

    READY = "ready"
    LOCKED = "locked"
    FAILED = "failed"
    FINISHED = "finished"
    RETRYING = "retrying"


class ExecutionOutcome(StrEnum):
    """Classification of a single execution attempt."""

    SUCCEEDED = "succeeded"
    RETRYABLE = "retryable"
    TERMINAL = "terminal"


# Default values
DEFAULT_PRIORITY = 0
DEFAULT_MAX_ATTEMPTS = 25
DEFAULT_MAX_RUN_TIME_SECONDS = 4 * 60 * 60
DEFAULT_SLEEP_DELAY_SECONDS = 5.0
DEFAULT_BATCH_SIZE = 100
DEFAULT_CANDIDATE_LIMIT = 5

# Backoff: delay = attempts ** BACKOFF_EXPONENT + BACKOFF_BASE_SECONDS
BACKOFF_EXPONENT = 4
BACKOFF_BASE_SECONDS = 5

EXPIRED_ERROR_MESSAGE = "execution expired"
UNDECODABLE_JOB_NAME = "undecodable"

# API constants
API_V1_PREFIX = "/v1"

# Metrics names
METRIC_QUEUE_DEPTH = "job_queue_depth"
METRIC_JOBS_ENQUEUED = "jobs_enqueued_total"
METRIC_JOBS_COMPLETED = "jobs_completed_total"
METRIC_JOB_DURATION = "job_duration_seconds"
METRIC_LOCK_ACQUIRED = "lock_acquired_total"
METRIC_LOCK_CONTENTION = "lock_contention_total"

# Trace span names
SPAN_ENQUEUE_JOB = "enqueue_job"
SPAN_ACQUIRE_LOCK = "acquire_lock"
SPAN_EXECUTE_JOB = "execute_job"
