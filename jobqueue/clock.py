"""
Clock helpers.

All timestamps handled by the queue are naive UTC datetimes so that they compare
consistently across PostgreSQL and SQLite and across worker hosts.
"""

from collections.abc import Callable
from datetime import datetime, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
