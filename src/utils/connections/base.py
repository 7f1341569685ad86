"""
Base class for acquiring source and destination connections.

Each job opens exactly one connection per side and closes it in its
cleanup path, so factories hand out plain driver connections rather than
pooled ones. Driver failures surface as ConnectionAcquisitionError.
"""

import logging
import time
from typing import Any

from opentelemetry import trace
from prometheus_client import Counter, Histogram

from jobs.classifier import extract_sqlstate
from jobs.errors import ConnectionAcquisitionError
from utils.tracing import trace_operation

logger = logging.getLogger(__name__)


CONNECTION_ERRORS = Counter(
    "db_connection_errors_total",
    "Number of failed connection attempts",
    ["database_type", "role"],
)

CONNECTION_ACQUIRE_TIME = Histogram(
    "db_connection_acquire_seconds",
    "Time to open a database connection",
    ["database_type", "role"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)


class ConnectionFactory:
    """
    Opens connections for one side of a job.

    Subclasses implement ``_create_connection`` and ``_get_db_type``.
    Instances are callable so they can be passed straight to the engines
    as ``acquire_source`` / ``acquire_destination``.
    """

    def __init__(self, role: str = "source", connect_timeout: int = 10):
        """
        Args:
            role: "source" or "destination", used in logs and metrics
            connect_timeout: Driver login timeout in seconds
        """
        self.role = role
        self.connect_timeout = connect_timeout

    def _create_connection(self) -> Any:
        """Create a new database connection. Must be implemented by subclasses."""
        raise NotImplementedError

    def _get_db_type(self) -> str:
        """Get database type for metrics. Must be implemented by subclasses."""
        raise NotImplementedError

    def describe(self) -> str:
        """Target description for logs; never includes credentials."""
        return self._get_db_type()

    def connect(self) -> Any:
        """
        Open a connection.

        Raises:
            ConnectionAcquisitionError: If the driver cannot connect
        """
        db_type = self._get_db_type()
        start_time = time.monotonic()

        with trace_operation(
            f"{db_type}_connect",
            kind=trace.SpanKind.CLIENT,
            database_type=db_type,
            role=self.role,
        ):
            try:
                conn = self._create_connection()
            except Exception as e:
                CONNECTION_ERRORS.labels(database_type=db_type, role=self.role).inc()
                sqlstate = extract_sqlstate(e)
                logger.error(f"Failed to connect {self.role} ({self.describe()}): {e}")
                raise ConnectionAcquisitionError(self.role, str(e), sqlstate) from e

        CONNECTION_ACQUIRE_TIME.labels(database_type=db_type, role=self.role).observe(
            time.monotonic() - start_time
        )
        logger.info(f"Connected {self.role} database ({self.describe()})")
        return conn

    def __call__(self) -> Any:
        return self.connect()
