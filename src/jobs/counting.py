"""
Pre-flight count validation.

The count query is optional. When present its single integer result is
the job's expected count, compared with the number of records actually
processed once the loop ends.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from opentelemetry import trace

from utils.tracing import trace_operation

from .classifier import extract_sqlstate
from .cursor import column_names
from .errors import CountQueryError

logger = logging.getLogger(__name__)

COUNT_COLUMN = "cnt"


class CountVerdict(Enum):
    FEWER_THAN_EXPECTED = "fewer"
    MORE_THAN_EXPECTED = "more"
    MATCH = "match"
    NOT_VALIDATED = "not_validated"


@dataclass(frozen=True)
class CountCheck:
    """Result of running the pre-flight count query."""

    expected: int | None

    @property
    def validated(self) -> bool:
        return self.expected is not None

    @property
    def is_empty(self) -> bool:
        return self.expected == 0


NOT_VALIDATED = CountCheck(expected=None)


def parse_count(row: Any, columns: list[str]) -> int:
    """
    Parse the count from the first row of the count query.

    Prefers a column named ``cnt``; otherwise uses the first column.

    Raises:
        CountQueryError: If the value is null, empty or not an integer
    """
    if row is None:
        raise CountQueryError("Count query returned no rows")

    lowered = [c.lower() for c in columns]
    index = lowered.index(COUNT_COLUMN) if COUNT_COLUMN in lowered else 0
    try:
        value = row[index]
    except (IndexError, TypeError):
        raise CountQueryError("Count query returned an empty row") from None

    if value is None or str(value).strip() == "":
        raise CountQueryError("Count query returned an empty value")
    try:
        return int(str(value).strip())
    except ValueError:
        raise CountQueryError(f"Count query returned a non-numeric value [{value}]") from None


def run_count_query(connection: Any, sql: str | None) -> CountCheck:
    """
    Execute the optional count query against the source.

    Args:
        connection: Source connection
        sql: Count query text; None or blank skips validation

    Returns:
        CountCheck with the expected count, or NOT_VALIDATED

    Raises:
        CountQueryError: If the query fails or its result cannot be parsed
    """
    if sql is None or not sql.strip():
        logger.debug("No count query configured, count validation skipped")
        return NOT_VALIDATED

    with trace_operation("count_query", kind=trace.SpanKind.CLIENT):
        cursor = connection.cursor()
        try:
            cursor.execute(sql)
            row = cursor.fetchone()
            columns = column_names(cursor.description)
        except Exception as e:
            state = extract_sqlstate(e)
            prefix = f"{state}:" if state else ""
            raise CountQueryError(f"{prefix}{type(e).__name__}: {e}") from e
        finally:
            cursor.close()

    expected = parse_count(row, columns)
    logger.info("Source record count retrieved")
    return CountCheck(expected=expected)


def compare_counts(processed: int, expected: int | None) -> CountVerdict:
    """Compare the processed count with the expected count."""
    if expected is None:
        return CountVerdict.NOT_VALIDATED
    if processed < expected:
        return CountVerdict.FEWER_THAN_EXPECTED
    if processed > expected:
        return CountVerdict.MORE_THAN_EXPECTED
    return CountVerdict.MATCH
