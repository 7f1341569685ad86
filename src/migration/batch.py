"""
Pending write batch against the destination.
"""

import logging
from collections.abc import Sequence
from typing import Any

from opentelemetry import trace

from utils.metrics import JobMetrics
from utils.tracing import trace_operation

logger = logging.getLogger(__name__)


class BatchWriter:
    """
    Destination write cursor plus the batch of bound parameters.

    The batch is cleared after every execute, whether it succeeds or not.
    """

    def __init__(self, connection: Any, sql: str, job: str, metrics: JobMetrics):
        self.connection = connection
        self.sql = sql
        self.job = job
        self.metrics = metrics
        self.pending: list[Sequence[Any] | dict[str, Any]] = []
        self.executions = 0
        self._cursor: Any = None

    @property
    def cursor(self) -> Any:
        if self._cursor is None:
            self._cursor = self.connection.cursor()
            # pyodbc binds executemany parameters as arrays when enabled
            if hasattr(self._cursor, "fast_executemany"):
                self._cursor.fast_executemany = True
        return self._cursor

    def add(self, params: Sequence[Any] | dict[str, Any]) -> None:
        self.pending.append(params)

    def execute_batch(self) -> int:
        """Run the pending batch with ``executemany``; returns its size."""
        if not self.pending:
            return 0
        size = len(self.pending)
        try:
            with trace_operation("batch_execute", kind=trace.SpanKind.CLIENT, job=self.job, batch_size=size):
                self.cursor.executemany(self.sql, self.pending)
        except Exception:
            self.metrics.record_batch(self.job, success=False)
            raise
        finally:
            self.pending.clear()
        self.executions += 1
        self.metrics.record_batch(self.job, success=True)
        logger.debug(f"Executed batch of {size} for {self.job}")
        return size

    def execute_one(self, params: Sequence[Any] | dict[str, Any]) -> None:
        self.cursor.execute(self.sql, params)
        self.executions += 1

    def close(self) -> None:
        if self._cursor is None:
            return
        cursor, self._cursor = self._cursor, None
        cursor.close()
