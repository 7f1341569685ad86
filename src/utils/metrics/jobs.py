"""
Metrics for migration and reconciliation jobs.

Tracks job runs, per-record outcomes, batch executions and count
mismatches, labelled by job name and kind (migration / reconciliation).
"""

import logging
import time

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

logger = logging.getLogger(__name__)


class JobMetrics:
    """
    Prometheus metrics for job runs

    Usage:
        metrics = JobMetrics(registry=CollectorRegistry())
        metrics.record_outcome("customers", "migration", "success")
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        self.registry = registry or REGISTRY

        self.job_runs_total = Counter(
            "migrator_job_runs_total",
            "Total number of job runs by final status",
            ["job", "kind", "status"],
            registry=self.registry,
        )

        self.job_duration_seconds = Histogram(
            "migrator_job_duration_seconds",
            "Duration of job runs in seconds",
            ["job", "kind"],
            buckets=(1, 5, 10, 30, 60, 300, 900, 1800, 3600, 7200, 14400),
            registry=self.registry,
        )

        self.records_total = Counter(
            "migrator_records_total",
            "Records processed, by outcome",
            ["job", "kind", "outcome"],
            registry=self.registry,
        )

        self.batch_executions_total = Counter(
            "migrator_batch_executions_total",
            "Write batches executed against the destination",
            ["job", "status"],
            registry=self.registry,
        )

        self.count_mismatch_total = Counter(
            "migrator_count_mismatch_total",
            "Jobs whose processed count differed from the expected count",
            ["job", "kind"],
            registry=self.registry,
        )

    def record_outcome(self, job: str, kind: str, outcome: str) -> None:
        self.records_total.labels(job=job, kind=kind, outcome=outcome).inc()

    def record_batch(self, job: str, success: bool) -> None:
        status = "success" if success else "failed"
        self.batch_executions_total.labels(job=job, status=status).inc()

    def record_count_mismatch(self, job: str, kind: str) -> None:
        self.count_mismatch_total.labels(job=job, kind=kind).inc()

    def record_run(self, job: str, kind: str, status: str, started_at: float) -> None:
        """
        Record a finished job run

        Args:
            job: Job name
            kind: "migration" or "reconciliation"
            status: Final job status
            started_at: ``time.monotonic()`` value taken when the job started
        """
        duration = time.monotonic() - started_at
        self.job_runs_total.labels(job=job, kind=kind, status=status).inc()
        self.job_duration_seconds.labels(job=job, kind=kind).observe(duration)
        logger.debug(f"Recorded job run: job={job}, kind={kind}, status={status}, duration={duration:.2f}s")
