"""
Destination transaction handling per transaction mode.

NONE       autocommit, the controller never commits or rolls back
BY_RECORD  commit or roll back after every record
ALL        one transaction; a savepoint per record, released on success
           and rolled back to on failure, committed once at the end
"""

import logging
from typing import Any

from jobs.config import TransactionMode
from jobs.dialects import SavepointDialect

logger = logging.getLogger(__name__)


# Wraps writes still pending after the last record
PENDING_SAVEPOINT = "sp_pending"


def savepoint_name(ordinal: int) -> str:
    return f"sp_{ordinal}"


class TransactionController:
    """Issues commits, rollbacks and savepoints on the destination connection."""

    def __init__(self, connection: Any, mode: TransactionMode, dialect: SavepointDialect):
        self.connection = connection
        self.mode = mode
        self.dialect = dialect
        self._savepoint: str | None = None

        self.commits = 0
        self.rollbacks = 0
        self.releases = 0
        self.savepoint_rollbacks = 0

    def begin(self) -> None:
        """Put the connection in the mode's commit behavior."""
        self.connection.autocommit = self.mode is TransactionMode.NONE
        logger.debug(f"Destination autocommit={self.connection.autocommit} mode={self.mode.value}")

    def _execute(self, sql: str) -> None:
        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
        finally:
            cursor.close()

    def begin_record(self, ordinal: int) -> None:
        self.begin_unit(savepoint_name(ordinal))

    def begin_unit(self, name: str) -> None:
        """Open a named savepoint under ALL; a no-op in the other modes."""
        if self.mode is not TransactionMode.ALL:
            return
        self._execute(self.dialect.create_sql(name))
        self._savepoint = name

    def record_succeeded(self) -> None:
        if self.mode is TransactionMode.BY_RECORD:
            self.connection.commit()
            self.commits += 1
        elif self.mode is TransactionMode.ALL and self._savepoint is not None:
            name, self._savepoint = self._savepoint, None
            release = self.dialect.release_sql(name)
            if release is not None:
                self._execute(release)
            self.releases += 1

    def record_failed(self) -> None:
        if self.mode is TransactionMode.BY_RECORD:
            self.connection.rollback()
            self.rollbacks += 1
        elif self.mode is TransactionMode.ALL and self._savepoint is not None:
            name, self._savepoint = self._savepoint, None
            self._execute(self.dialect.rollback_sql(name))
            self.savepoint_rollbacks += 1

    def abandon(self) -> None:
        """
        Roll back everything not yet committed.

        Used when a unit of work could not be ended; under ALL this discards
        the whole-job transaction.
        """
        self._savepoint = None
        if self.mode is not TransactionMode.NONE:
            self.connection.rollback()
            self.rollbacks += 1

    def finish(self) -> None:
        """Commit the whole-job transaction under ALL."""
        if self.mode is TransactionMode.ALL:
            self.connection.commit()
            self.commits += 1
            logger.debug("Committed whole-job transaction")
