"""
Forward-only streaming read of a source query.

Rows are pulled with ``fetchmany(fetch_size)`` so that the client never
buffers more than one chunk. Column names are captured once when the
stream opens.
"""

import logging
from collections import deque
from collections.abc import Iterator, Sequence
from typing import Any

from opentelemetry import trace

from utils.tracing import trace_operation

logger = logging.getLogger(__name__)


class Record:
    """
    One source or destination row with its column names.

    Supports ``record[0]``, ``record["name"]`` (case-insensitive) and
    ``record.get("name")``.
    """

    __slots__ = ("values", "columns", "_index")

    def __init__(self, values: Sequence[Any], columns: Sequence[str]):
        self.values = tuple(values)
        self.columns = tuple(columns)
        self._index = {name.lower(): i for i, name in enumerate(self.columns)}

    def __getitem__(self, key: int | str) -> Any:
        if isinstance(key, str):
            try:
                return self.values[self._index[key.lower()]]
            except KeyError:
                raise KeyError(key) from None
        return self.values[key]

    def get(self, key: str, default: Any = None) -> Any:
        index = self._index.get(key.lower())
        return default if index is None else self.values[index]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.values)

    def as_dict(self) -> dict[str, Any]:
        return dict(zip(self.columns, self.values))

    def __repr__(self) -> str:
        return f"Record({self.as_dict()!r})"


def column_names(description: Sequence[Sequence[Any]] | None) -> list[str]:
    """Column names from a DB-API ``cursor.description``."""
    if not description:
        return []
    return [str(col[0]) for col in description]


class StreamingCursor:
    """
    Lazy, finite, non-restartable iterator over a query result.

    Usage:
        with StreamingCursor(conn, sql, fetch_size=1000) as stream:
            for record in stream:
                ...
                if stream.at_last():
                    ...
    """

    def __init__(
        self,
        connection: Any,
        sql: str,
        fetch_size: int,
        params: Sequence[Any] | None = None,
        name: str = "source",
    ):
        if fetch_size < 1:
            raise ValueError(f"fetch_size must be positive, got {fetch_size}")
        self.connection = connection
        self.sql = sql
        self.params = params
        self.fetch_size = fetch_size
        self.name = name
        self.columns: list[str] = []
        self.yielded = 0

        self._cursor: Any = None
        self._buffer: deque[Any] = deque()
        self._exhausted = False
        self._closed = False
        self._iterating = False

    def open(self) -> "StreamingCursor":
        """Execute the query and capture column metadata."""
        if self._cursor is not None:
            raise RuntimeError(f"{self.name} stream already opened")

        with trace_operation(
            "stream_open",
            kind=trace.SpanKind.CLIENT,
            stream=self.name,
            fetch_size=self.fetch_size,
        ):
            self._cursor = self.connection.cursor()
            self._cursor.arraysize = self.fetch_size
            if self.params is None:
                self._cursor.execute(self.sql)
            else:
                self._cursor.execute(self.sql, self.params)

        self.columns = column_names(self._cursor.description)
        logger.debug(f"{self.name} columns:\n" + "\n".join(self.columns))
        return self

    def _fill(self) -> None:
        if self._exhausted:
            return
        rows = self._cursor.fetchmany(self.fetch_size)
        if not rows:
            self._exhausted = True
            return
        self._buffer.extend(rows)

    def __iter__(self) -> Iterator[Record]:
        if self._cursor is None:
            self.open()
        if self._iterating:
            raise RuntimeError(f"{self.name} stream cannot be restarted")
        self._iterating = True
        return self._records()

    def _records(self) -> Iterator[Record]:
        while True:
            if not self._buffer:
                self._fill()
            if not self._buffer:
                return
            self.yielded += 1
            yield Record(self._buffer.popleft(), self.columns)

    def at_last(self) -> bool:
        """
        True once the most recently yielded record is the final one.

        Only reads ahead when the current chunk has been consumed.
        """
        if self._buffer:
            return False
        self._fill()
        return not self._buffer

    def close(self) -> None:
        """Close the underlying cursor; safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._cursor is not None:
            self._cursor.close()

    def __enter__(self) -> "StreamingCursor":
        if self._cursor is None:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
