"""
Unit tests for log output and tracing setup.
"""

import json
import logging

import pytest

from jobqueue.observability.logging import bind_context, clear_context, setup_logging
from jobqueue.observability.tracing import get_tracer, setup_tracing


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    clear_context()
    root.handlers = handlers
    root.setLevel(level)


class TestLogging:
    """Tests for setup_logging."""

    def test_json_lines_carry_extra_and_bound_fields(self, restore_root_logger, capsys):
        setup_logging(log_level="debug", log_format="json")
        bind_context(worker_id="host:1")

        logging.getLogger("jobqueue.test").info("Job started", extra={"job_id": 7})

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["event"] == "Job started"
        assert record["level"] == "info"
        assert record["job_id"] == 7
        assert record["worker_id"] == "host:1"
        assert "timestamp" in record
        assert "trace_id" not in record

    def test_unknown_level_falls_back_to_info(self, restore_root_logger):
        setup_logging(log_level="chatty", log_format="console")

        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


class TestTracing:
    """Tests for setup_tracing with tracing disabled."""

    def test_disabled_tracer_does_not_record(self):
        tracer = setup_tracing()

        with tracer.start_as_current_span("job.execute") as span:
            assert not span.is_recording()

        assert get_tracer() is tracer
