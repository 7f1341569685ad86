"""
Hooks describing one concrete reconciliation check.
"""

from collections.abc import Callable
from dataclasses import dataclass

from jobs.cursor import Record
from jobs.lifecycle import RecordContext
from jobs.outcomes import Outcome

PrepareHook = Callable[[Record, RecordContext], Outcome | None]
CheckHook = Callable[[Record, Record, RecordContext], Outcome | None]
IdentifyHook = Callable[[Record], str]


def first_column(record: Record) -> str:
    return str(record[0])


@dataclass(frozen=True)
class ReconciliationDefinition:
    """
    Strategy object for ``run_reconciliation``.

    Attributes:
        name: Job name used in logs and metrics
        source_query: Identifier of the source SELECT
        destination_query: Identifier of the parameterized destination lookup
        prepare: Builds the lookup parameters from a source record, or skips it
        check: Compares the source record with the destination row;
            ``SkipWithReason`` reports a mismatch
        identify_source: Source record identifier for diagnostics
        identify_destination: Destination record identifier for diagnostics
        count_sql: Optional pre-flight count query run on the source
    """

    name: str
    source_query: str
    destination_query: str
    prepare: PrepareHook
    check: CheckHook
    identify_source: IdentifyHook = first_column
    identify_destination: IdentifyHook = first_column
    count_sql: str | None = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("Reconciliation name is required")
        for hook in ("prepare", "check"):
            if not callable(getattr(self, hook)):
                raise TypeError(f"Reconciliation {self.name} {hook} hook is not callable")
