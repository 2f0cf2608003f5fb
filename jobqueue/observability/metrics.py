"""
Prometheus metrics collection.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from jobqueue.constants import (
    METRIC_JOB_DURATION,
    METRIC_JOBS_COMPLETED,
    METRIC_JOBS_ENQUEUED,
    METRIC_LOCK_ACQUIRED,
    METRIC_LOCK_CONTENTION,
    METRIC_QUEUE_DEPTH,
)
from jobqueue.types.job import JobCounts

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the job queue.

    Collects metrics for:
    - Queue depth per derived job state
    - Enqueued jobs and execution outcomes
    - Job execution duration
    - Lock acquisitions and lost lock races
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.queue_depth = Gauge(
            METRIC_QUEUE_DEPTH,
            "Number of jobs per state",
            ["state"],
            registry=self._registry,
        )

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            ["priority"],
            registry=self._registry,
        )

        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of job execution attempts by outcome",
            ["outcome"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Job execution duration in seconds",
            ["outcome"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 300.0, 3600.0),
            registry=self._registry,
        )

        self.lock_acquired = Counter(
            METRIC_LOCK_ACQUIRED,
            "Total number of job locks acquired",
            ["worker_id"],
            registry=self._registry,
        )

        self.lock_contention = Counter(
            METRIC_LOCK_CONTENTION,
            "Total number of lock attempts lost to another worker",
            ["worker_id"],
            registry=self._registry,
        )

    def record_job_enqueued(self, priority: int) -> None:
        """Record a job submission."""
        self.jobs_enqueued.labels(priority=str(priority)).inc()

    def record_job_completed(self, outcome: str, duration_seconds: float) -> None:
        """Record the outcome of one execution attempt."""
        self.jobs_completed.labels(outcome=outcome).inc()
        self.job_duration.labels(outcome=outcome).observe(duration_seconds)

    def record_lock_acquired(self, worker_id: str) -> None:
        """Record a lock acquisition."""
        self.lock_acquired.labels(worker_id=worker_id).inc()

    def record_lock_contention(self, worker_id: str) -> None:
        """Record a lock race lost to another worker."""
        self.lock_contention.labels(worker_id=worker_id).inc()

    def update_queue_depth(self, counts: JobCounts) -> None:
        """Update queue depth gauges from state counts."""
        for state, count in counts.as_dict().items():
            self.queue_depth.labels(state=state).set(count)

    def get_metrics(self) -> bytes:
        """Get all metrics in Prometheus format."""
        return generate_latest(self._registry)

    def get_content_type(self) -> str:
        """Get the content type for metrics response."""
        return CONTENT_TYPE_LATEST


def setup_metrics() -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance, creating it on first use.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
