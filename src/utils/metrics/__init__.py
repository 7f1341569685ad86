"""
Prometheus metrics for migration and reconciliation jobs

Usage:
    from utils.metrics import MetricsPublisher, default_job_metrics

    publisher = MetricsPublisher(port=9091)
    publisher.start()

    metrics = default_job_metrics()
    metrics.record_outcome("customers", "migration", "success")
"""

import threading

from .jobs import JobMetrics
from .publisher import MetricsPublisher

_default_metrics: JobMetrics | None = None
_default_lock = threading.Lock()


def default_job_metrics() -> JobMetrics:
    """Process-wide JobMetrics bound to the default registry, created on first use."""
    global _default_metrics

    with _default_lock:
        if _default_metrics is None:
            _default_metrics = JobMetrics()
        return _default_metrics


__all__ = [
    "JobMetrics",
    "MetricsPublisher",
    "default_job_metrics",
]
