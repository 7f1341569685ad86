"""
Per-record failure classification.

Maps an exception raised while processing a single record onto one of
three handling policies:

- FATAL_ABORT: the connection itself is gone, stop fetching records
- RECOVERABLE_SKIP: a hook declared the record invalid, continue
- RECOVERABLE_LOG: any other database or runtime failure, log and continue
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum

import psycopg2

from .errors import (
    SQLSTATE_CONNECTION_FAILURE,
    SQLSTATE_PG_CONNECTION_FAILURE,
    ConnectionLostError,
    RecordValidationError,
)

logger = logging.getLogger(__name__)

SQLSTATE_PATTERN = re.compile(r"^[0-9A-Z]{5}$")


class Classification(Enum):
    FATAL_ABORT = "fatal_abort"
    RECOVERABLE_SKIP = "recoverable_skip"
    RECOVERABLE_LOG = "recoverable_log"

    @property
    def is_fatal(self) -> bool:
        return self is Classification.FATAL_ABORT


@dataclass(frozen=True)
class ClassificationPolicy:
    """Status codes that mean the connection has been lost."""

    connection_lost_states: frozenset[str] = field(
        default_factory=lambda: frozenset({SQLSTATE_CONNECTION_FAILURE, SQLSTATE_PG_CONNECTION_FAILURE})
    )


DEFAULT_POLICY = ClassificationPolicy()


@dataclass(frozen=True)
class ClassifiedError:
    """An exception together with its classification and status code."""

    error: BaseException
    classification: Classification
    sqlstate: str | None = None

    @property
    def is_fatal(self) -> bool:
        return self.classification.is_fatal

    @property
    def is_database_error(self) -> bool:
        return self.sqlstate is not None

    def describe(self) -> str:
        """Short text used in diagnostics."""
        if self.classification is Classification.RECOVERABLE_SKIP:
            return str(self.error)
        if self.sqlstate is not None:
            return f"SQLState:{self.sqlstate} {type(self.error).__name__}: {self.error}"
        return f"{type(self.error).__name__}: {self.error}"


def extract_sqlstate(exc: BaseException) -> str | None:
    """
    Extract a vendor status code from a database exception.

    Checks, in order: an explicit ``sqlstate`` attribute, psycopg2's
    ``pgcode``, and pyodbc's convention of passing the SQLSTATE as the first
    positional argument.

    psycopg2 raises ``InterfaceError``, or ``OperationalError`` without a
    pgcode, once the server link is gone; those map to ``08006``.
    """
    state = getattr(exc, "sqlstate", None)
    if isinstance(state, str) and state:
        return state

    pgcode = getattr(exc, "pgcode", None)
    if isinstance(pgcode, str) and pgcode:
        return pgcode

    if isinstance(exc, (psycopg2.InterfaceError, psycopg2.OperationalError)):
        return SQLSTATE_PG_CONNECTION_FAILURE

    args = getattr(exc, "args", ())
    if len(args) >= 2 and isinstance(args[0], str) and SQLSTATE_PATTERN.match(args[0]):
        return args[0]

    return None


def classify(
    exc: BaseException,
    policy: ClassificationPolicy = DEFAULT_POLICY,
) -> ClassifiedError:
    """
    Classify a failure raised while processing one record.

    Args:
        exc: The exception raised by a hook or a database call
        policy: Which status codes count as a lost connection

    Returns:
        ClassifiedError carrying the classification and status code
    """
    sqlstate = extract_sqlstate(exc)

    if isinstance(exc, ConnectionLostError):
        return ClassifiedError(exc, Classification.FATAL_ABORT, sqlstate)

    if sqlstate is not None and sqlstate in policy.connection_lost_states:
        return ClassifiedError(exc, Classification.FATAL_ABORT, sqlstate)

    if isinstance(exc, RecordValidationError):
        return ClassifiedError(exc, Classification.RECOVERABLE_SKIP, sqlstate)

    return ClassifiedError(exc, Classification.RECOVERABLE_LOG, sqlstate)
