"""
Pytest configuration and fixtures for migrator tests.

Provides configuration, metrics and query-loader fixtures; the DB-API
fakes live in dbfakes.py.
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path

import pytest
from prometheus_client import CollectorRegistry

from dbfakes import LOOKUP_SQL, SOURCE_SQL
from jobs.config import JobConfig, TransactionMode
from utils.metrics import JobMetrics


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "property: hypothesis property-based tests")
    config.addinivalue_line("markers", "slow: mark test as slow running")


@pytest.fixture
def metrics() -> JobMetrics:
    """JobMetrics on an isolated registry."""
    return JobMetrics(registry=CollectorRegistry())


@pytest.fixture
def queries() -> Callable[[str], str]:
    """Query loader serving the canned statements by identifier."""
    texts = {
        "customers_select.sql": SOURCE_SQL,
        "customers_lookup.sql": LOOKUP_SQL,
    }

    def load(identifier: str) -> str:
        return texts[identifier]

    return load


@pytest.fixture
def make_config() -> Callable[..., JobConfig]:
    def factory(
        mode: TransactionMode = TransactionMode.NONE,
        batch_size: int = 1,
        fetch_size: int = 3,
        destination_fetch_size: int = 1,
    ) -> JobConfig:
        return JobConfig(
            encoding="utf-8",
            source_fetch_size=fetch_size,
            destination_fetch_size=destination_fetch_size,
            configured_batch_size=batch_size,
            transaction_mode=mode,
        )

    return factory


@pytest.fixture
def project_root() -> Path:
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep migrator settings from the developer's shell out of tests."""
    for key in list(os.environ):
        if key.startswith(("MIGRATOR_", "SOURCE_DB_", "DESTINATION_DB_", "VAULT_")):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("OTLP_ENDPOINT", raising=False)


@pytest.fixture
def caplog_debug(caplog: pytest.LogCaptureFixture) -> pytest.LogCaptureFixture:
    caplog.set_level(logging.DEBUG)
    return caplog
