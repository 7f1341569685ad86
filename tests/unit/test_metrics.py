"""
Unit tests for src/utils/metrics

Covers JobMetrics counters and histograms on an isolated registry and the
MetricsPublisher HTTP endpoint lifecycle.
"""

import time
from unittest.mock import patch

import pytest
from prometheus_client import REGISTRY, CollectorRegistry

from utils.metrics import JobMetrics, MetricsPublisher, default_job_metrics


class TestJobMetrics:
    """Test JobMetrics class"""

    def test_record_outcome(self, metrics):
        """Test per-record outcomes are counted by label"""
        # Act
        metrics.record_outcome("customers", "migration", "success")
        metrics.record_outcome("customers", "migration", "success")
        metrics.record_outcome("customers", "migration", "skipped")

        # Assert
        sample = metrics.registry.get_sample_value
        labels = {"job": "customers", "kind": "migration"}
        assert sample("migrator_records_total", {**labels, "outcome": "success"}) == 2
        assert sample("migrator_records_total", {**labels, "outcome": "skipped"}) == 1

    def test_record_batch(self, metrics):
        """Test batch executions are split by status"""
        metrics.record_batch("customers", success=True)
        metrics.record_batch("customers", success=False)

        sample = metrics.registry.get_sample_value
        assert sample("migrator_batch_executions_total", {"job": "customers", "status": "success"}) == 1
        assert sample("migrator_batch_executions_total", {"job": "customers", "status": "failed"}) == 1

    def test_record_count_mismatch(self, metrics):
        """Test count mismatches are counted per job"""
        metrics.record_count_mismatch("orders", "reconciliation")

        assert metrics.registry.get_sample_value(
            "migrator_count_mismatch_total", {"job": "orders", "kind": "reconciliation"}
        ) == 1

    def test_record_run(self, metrics):
        """Test a finished run increments the status counter and observes duration"""
        # Arrange
        started_at = time.monotonic() - 2

        # Act
        metrics.record_run("customers", "migration", "completed", started_at)

        # Assert
        sample = metrics.registry.get_sample_value
        assert sample(
            "migrator_job_runs_total", {"job": "customers", "kind": "migration", "status": "completed"}
        ) == 1
        assert sample("migrator_job_duration_seconds_count", {"job": "customers", "kind": "migration"}) == 1
        assert sample("migrator_job_duration_seconds_sum", {"job": "customers", "kind": "migration"}) >= 2

    def test_default_metrics_is_shared(self):
        """Test default_job_metrics returns one instance on the default registry"""
        first = default_job_metrics()

        assert default_job_metrics() is first
        assert first.registry is REGISTRY

    def test_separate_registries_do_not_collide(self):
        """Test two instances may coexist on their own registries"""
        JobMetrics(registry=CollectorRegistry())
        JobMetrics(registry=CollectorRegistry())


class TestMetricsPublisher:
    """Test MetricsPublisher class"""

    def test_init_with_defaults(self):
        """Test initialization with default port"""
        # Arrange & Act
        publisher = MetricsPublisher()

        # Assert
        assert publisher.port == 9091
        assert publisher.registry is REGISTRY
        assert not publisher.is_started()

    @patch("utils.metrics.publisher.start_http_server")
    def test_start_successful(self, mock_start_http_server):
        """Test successful server start"""
        # Arrange
        registry = CollectorRegistry()
        publisher = MetricsPublisher(port=9200, registry=registry)

        # Act
        publisher.start()

        # Assert
        mock_start_http_server.assert_called_once_with(9200, registry=registry)
        assert publisher.is_started()

    @patch("utils.metrics.publisher.start_http_server")
    def test_start_twice_is_ignored(self, mock_start_http_server):
        """Test a second start does not bind again"""
        publisher = MetricsPublisher()

        publisher.start()
        publisher.start()

        mock_start_http_server.assert_called_once()

    @patch("utils.metrics.publisher.start_http_server", side_effect=OSError("Address in use"))
    def test_port_in_use(self, mock_start_http_server):
        """Test a bind failure raises RuntimeError"""
        publisher = MetricsPublisher(port=9091)

        with pytest.raises(RuntimeError, match="9091"):
            publisher.start()

        assert not publisher.is_started()
