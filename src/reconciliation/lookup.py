"""
Parameterized single-row lookup against the destination.
"""

import logging
from collections.abc import Sequence
from typing import Any

from jobs.cursor import Record, column_names

logger = logging.getLogger(__name__)


class DestinationLookup:
    """One reusable destination cursor executing the comparison query."""

    def __init__(self, connection: Any, sql: str, fetch_size: int):
        self.connection = connection
        self.sql = sql
        self.fetch_size = fetch_size
        self.executions = 0
        self._cursor: Any = None

    def fetch(self, params: Sequence[Any] | dict[str, Any]) -> Record | None:
        """First row matching ``params``, or None when there is none."""
        if self._cursor is None:
            self._cursor = self.connection.cursor()
            self._cursor.arraysize = self.fetch_size

        if params:
            self._cursor.execute(self.sql, params)
        else:
            self._cursor.execute(self.sql)
        self.executions += 1

        row = self._cursor.fetchone()
        if row is None:
            return None
        return Record(row, column_names(self._cursor.description))

    def close(self) -> None:
        if self._cursor is None:
            return
        cursor, self._cursor = self._cursor, None
        cursor.close()
