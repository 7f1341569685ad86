"""
Hooks describing one concrete migration.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from jobs.config import TransactionMode
from jobs.cursor import Record
from jobs.lifecycle import RecordContext
from jobs.outcomes import Outcome

BindHook = Callable[[Record, RecordContext], Outcome | None]
OtherWorkHook = Callable[[Record, Any, RecordContext], None]
IdentifyHook = Callable[[Record], str]


def first_column(record: Record) -> str:
    return str(record[0])


@dataclass(frozen=True)
class MigrationDefinition:
    """
    Strategy object for ``run_migration``.

    Attributes:
        name: Job name used in logs and metrics
        source_query: Identifier of the source SELECT, resolved by the query loader
        write_sql: Parameterized destination write statement
        bind: Maps a source record to the write's parameters, or skips it
        identify: Record identifier for diagnostics
        count_sql: Optional pre-flight count query run on the source
        other_work: Side effect run against the destination before the write
        transaction_mode: Commit behavior of this migration; the configured
            mode when None
    """

    name: str
    source_query: str
    write_sql: str
    bind: BindHook
    identify: IdentifyHook = first_column
    count_sql: str | None = None
    other_work: OtherWorkHook | None = None
    transaction_mode: TransactionMode | None = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Migration name is required")
        if not self.write_sql or not self.write_sql.strip():
            raise ValueError(f"Migration {self.name} has no write statement")
        if not callable(self.bind):
            raise TypeError(f"Migration {self.name} bind hook is not callable")
        if self.transaction_mode is not None:
            object.__setattr__(self, "transaction_mode", TransactionMode.parse(self.transaction_mode))
