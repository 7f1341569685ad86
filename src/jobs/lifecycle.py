"""
Control skeleton shared by the migration and reconciliation engines.

A job run owns its pair of connections from acquisition to cleanup:

1. acquire the source connection
2. run the optional count query (stop on failure or on zero rows)
3. hand over to the engine body (load queries, acquire destination,
   stream and process records)
4. release both connections, on every exit path

Job-level errors end the run with a CRITICAL log line; they are never
raised to the caller. The returned JobResult describes what happened.
"""

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from opentelemetry import trace

from utils.logging import ContextLogger
from utils.metrics import JobMetrics, default_job_metrics
from utils.tracing import add_span_attributes, trace_operation

from .classifier import DEFAULT_POLICY, ClassificationPolicy, classify, extract_sqlstate
from .config import JobConfig
from .counting import CountVerdict, run_count_query
from .cursor import Record, StreamingCursor
from .diagnostics import JobDiagnostics
from .errors import ConnectionAcquisitionError, CountQueryError, MigratorError, QueryLoadError

logger = logging.getLogger(__name__)

ConnectionProvider = Callable[[], Any]
QueryLoader = Callable[[str], str]

# Identifier logged when the source link drops while fetching
SOURCE_FETCH = "<source fetch>"


class JobStatus(Enum):
    COMPLETED = "completed"
    EMPTY = "empty"          # count query returned zero
    ABORTED = "aborted"      # connection lost inside the record loop
    FAILED = "failed"        # job-level error, loop never ran or could not finish


class RecordOutcome(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"
    NOT_FOUND = "not_found"
    MISMATCH = "mismatch"
    FATAL = "fatal"


@dataclass
class JobResult:
    """Summary of one job run."""

    job: str
    kind: str
    status: JobStatus = JobStatus.COMPLETED
    processed: int = 0
    expected: int | None = None
    verdict: CountVerdict | None = None
    error: str | None = None
    outcomes: dict[RecordOutcome, int] = field(
        default_factory=lambda: {outcome: 0 for outcome in RecordOutcome}
    )

    def count(self, outcome: RecordOutcome) -> int:
        return self.outcomes[outcome]

    @property
    def ok(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.EMPTY)


@dataclass
class RecordContext:
    """
    Per-record state handed to hooks.

    ``comment`` is appended to the record's position in progress lines.
    ``skip_write()`` suppresses the write of this iteration only.
    """

    ordinal: int
    expected: int | None = None
    comment: str = ""
    _skip_write: bool = False

    def skip_write(self) -> None:
        self._skip_write = True

    @property
    def write_skipped(self) -> bool:
        return self._skip_write


class JobRun:
    """
    State and resources of one job invocation.

    Never shared between jobs; created and torn down by ``run_job``.
    """

    def __init__(
        self,
        name: str,
        kind: str,
        config: JobConfig,
        acquire_source: ConnectionProvider,
        acquire_destination: ConnectionProvider,
        load_query: QueryLoader,
        logger: ContextLogger | None = None,
        metrics: JobMetrics | None = None,
        policy: ClassificationPolicy = DEFAULT_POLICY,
    ):
        self.name = name
        self.kind = kind
        self.config = config
        self.policy = policy
        self.diagnostics = JobDiagnostics(name, kind, logger)
        self.metrics = metrics or default_job_metrics()
        self.result = JobResult(job=name, kind=kind)

        self._acquire_source = acquire_source
        self._acquire_destination = acquire_destination
        self._load_query = load_query
        self.source: Any = None
        self.destination: Any = None
        self._acquired: list[tuple[str, Any]] = []
        self.source_lost = False

    def _acquire(self, role: str, provider: ConnectionProvider) -> Any:
        try:
            conn = provider()
        except ConnectionAcquisitionError:
            raise
        except Exception as e:
            raise ConnectionAcquisitionError(role, f"{type(e).__name__}: {e}", extract_sqlstate(e)) from e
        if conn is None:
            raise ConnectionAcquisitionError(role, "provider returned no connection")
        self._acquired.append((role, conn))
        self.diagnostics.info(f"Connected to {role} database")
        return conn

    def acquire_source(self) -> Any:
        self.source = self._acquire("source", self._acquire_source)
        return self.source

    def acquire_destination(self) -> Any:
        self.destination = self._acquire("destination", self._acquire_destination)
        return self.destination

    def load_query(self, identifier: str, purpose: str) -> str:
        """Load query text; any failure becomes a QueryLoadError."""
        try:
            sql = self._load_query(identifier)
        except QueryLoadError:
            raise
        except Exception as e:
            raise QueryLoadError(str(identifier), f"{type(e).__name__}: {e}") from e
        if sql is None or not str(sql).strip():
            raise QueryLoadError(str(identifier), "no query text")
        self.diagnostics.debug(f"{purpose} SQL:{sql}")
        return sql

    def open_stream(self, connection: Any, sql: str, fetch_size: int, name: str) -> StreamingCursor:
        stream = StreamingCursor(connection, sql, fetch_size, name=name).open()
        self.diagnostics.info(f"  ** {name} data retrieval started **")
        return stream

    def records(self, stream: StreamingCursor) -> Iterator[Record]:
        """
        Iterate ``stream``, stopping if the source connection is lost.

        A lost connection while fetching is reported at the ordinal being
        fetched and sets ``source_lost``. Other fetch errors propagate and
        fail the job.
        """
        iterator = iter(stream)
        while True:
            try:
                record = next(iterator)
            except StopIteration:
                return
            except Exception as e:
                classified = classify(e, self.policy)
                if not classified.is_fatal:
                    raise
                self.diagnostics.record_failure(classified, stream.yielded + 1, SOURCE_FETCH)
                self.source_lost = True
                return
            yield record

    def tally(self, outcome: RecordOutcome) -> None:
        self.result.outcomes[outcome] += 1
        self.metrics.record_outcome(self.name, self.kind, outcome.value)

    def finish_stream(self, processed: int) -> None:
        """End-of-stream diagnostic comparing processed and expected counts."""
        self.result.processed = processed
        verdict = self.diagnostics.count_verdict(processed)
        self.result.verdict = verdict
        add_span_attributes(job_verdict=verdict.value)
        if verdict in (CountVerdict.FEWER_THAN_EXPECTED, CountVerdict.MORE_THAN_EXPECTED):
            self.metrics.record_count_mismatch(self.name, self.kind)

    def close_quietly(self, what: str, close: Callable[[], None]) -> None:
        try:
            close()
        except Exception as e:
            self.diagnostics.warning(f"Error closing {what}: {e}")

    def release(self) -> None:
        """Close every acquired connection exactly once, newest first."""
        while self._acquired:
            role, conn = self._acquired.pop()
            try:
                conn.close()
            except Exception as e:
                state = extract_sqlstate(e)
                self.diagnostics.warning(
                    f"Error closing {role} connection: {state + ':' if state else ''}{e}"
                )


def run_job(run: JobRun, count_sql: str | None, body: Callable[[JobRun], None]) -> JobResult:
    """
    Drive one job through the shared skeleton.

    Args:
        run: The job's state and collaborators
        count_sql: Optional pre-flight count query
        body: Engine-specific work, called after count validation

    Returns:
        JobResult for the run
    """
    diagnostics = run.diagnostics
    started_at = time.monotonic()
    diagnostics.banner(f"{run.kind} started")

    with trace_operation("job_run", kind=trace.SpanKind.INTERNAL, job=run.name, job_kind=run.kind) as span:
        try:
            source = run.acquire_source()

            count = run_count_query(source, count_sql)
            if count.validated:
                run.result.expected = count.expected
                diagnostics.expected = count.expected
                if count.is_empty:
                    diagnostics.info(f"No records to process.\n{count_sql}")
                    run.result.status = JobStatus.EMPTY
                else:
                    diagnostics.info(f"Source record count=[{count.expected}]")

            if run.result.status is not JobStatus.EMPTY:
                body(run)

        except CountQueryError as e:
            diagnostics.error(f"Failed to retrieve the record count. {e}\n{count_sql}")
            run.result.status = JobStatus.FAILED
            run.result.error = str(e)
        except MigratorError as e:
            diagnostics.fatal(str(e), exc=e)
            run.result.status = JobStatus.FAILED
            run.result.error = str(e)
        except Exception as e:
            state = extract_sqlstate(e)
            diagnostics.fatal(f"{state + ':' if state else ''}{type(e).__name__}: {e}", exc=e)
            run.result.status = JobStatus.FAILED
            run.result.error = f"{type(e).__name__}: {e}"
        finally:
            run.release()

        span.set_attribute("job.status", run.result.status.value)
        span.set_attribute("job.processed", run.result.processed)

    run.metrics.record_run(run.name, run.kind, run.result.status.value, started_at)
    diagnostics.banner(f"{run.kind} finished ({run.result.status.value})")
    return run.result
