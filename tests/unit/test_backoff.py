"""
Unit tests for retry backoff.
"""

from datetime import datetime, timedelta

import pytest

from jobqueue.worker.backoff import backoff_delay, is_exhausted, next_run_at


class TestBackoff:
    """Tests for the retry schedule."""

    @pytest.mark.parametrize(
        "attempts,seconds",
        [(0, 5), (1, 6), (2, 21), (3, 86), (4, 261), (10, 10005)],
    )
    def test_backoff_delay(self, attempts: int, seconds: int):
        assert backoff_delay(attempts) == timedelta(seconds=seconds)

    def test_negative_attempts_treated_as_zero(self):
        assert backoff_delay(-3) == timedelta(seconds=5)

    def test_next_run_at(self):
        now = datetime(2024, 1, 1, 12, 0, 0)

        assert next_run_at(now, 1) == datetime(2024, 1, 1, 12, 0, 6)

    def test_exhaustion_boundary(self):
        assert not is_exhausted(2, 3)
        assert is_exhausted(3, 3)
        assert is_exhausted(4, 3)
