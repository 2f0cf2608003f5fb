"""
Retry scheduling for failed jobs.

delay = attempts ** 4 + 5 seconds, i.e. 6s, 21s, 86s, 261s, ... so a job that
keeps failing backs off quickly; with the default 25 attempts the last retry
happens roughly 20 days after the first.
"""

from datetime import datetime, timedelta

from jobqueue.constants import BACKOFF_BASE_SECONDS, BACKOFF_EXPONENT


def backoff_delay(attempts: int) -> timedelta:
    """
    Delay before the next try of a job that has failed `attempts` times.

    Args:
        attempts: Number of execution attempts so far.

    Returns:
        timedelta: Time to wait before the job is due again.
    """
    attempts = max(attempts, 0)
    return timedelta(seconds=attempts**BACKOFF_EXPONENT + BACKOFF_BASE_SECONDS)


def next_run_at(now: datetime, attempts: int) -> datetime:
    """Next eligible run time for a job rescheduled at `now`."""
    return now + backoff_delay(attempts)


def is_exhausted(attempts: int, max_attempts: int) -> bool:
    """A job that has used all of its attempts takes the terminal path."""
    return attempts >= max_attempts
