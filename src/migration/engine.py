"""
Migration engine.

Streams the source query and, per record, runs the definition's hooks
and stages or executes the destination write. Record-level failures are
classified; a lost connection, or a record whose commit or rollback
failed, stops the loop.
"""

import logging

from jobs.classifier import (
    DEFAULT_POLICY,
    Classification,
    ClassificationPolicy,
    ClassifiedError,
    classify,
)
from jobs.config import JobConfig
from jobs.dialects import SavepointDialect, dialect_for
from jobs.diagnostics import safe_identifier
from jobs.lifecycle import (
    ConnectionProvider,
    JobResult,
    JobRun,
    JobStatus,
    QueryLoader,
    RecordContext,
    RecordOutcome,
    run_job,
)
from jobs.outcomes import SkipWithReason, ensure_outcome, is_skip
from utils.logging import ContextLogger
from utils.metrics import JobMetrics

from .batch import BatchWriter
from .definition import MigrationDefinition
from .transactions import PENDING_SAVEPOINT, TransactionController

logger = logging.getLogger(__name__)

KIND = "migration"
PENDING_BATCH = "pending batch"


class _RecordSkipped(Exception):
    """Internal signal: the bind hook returned SkipWithReason."""

    def __init__(self, outcome: SkipWithReason):
        super().__init__(outcome.message)
        self.outcome = outcome


def run_migration(
    definition: MigrationDefinition,
    config: JobConfig,
    acquire_source: ConnectionProvider,
    acquire_destination: ConnectionProvider,
    load_query: QueryLoader,
    logger: ContextLogger | None = None,
    metrics: JobMetrics | None = None,
    policy: ClassificationPolicy = DEFAULT_POLICY,
    dialect: SavepointDialect | None = None,
) -> JobResult:
    """
    Run one migration job.

    Args:
        definition: Hooks and statements of the migration
        config: Fetch size, batch size and transaction mode; the definition's
            transaction mode, when set, replaces the configured one
        acquire_source: Returns an open source connection
        acquire_destination: Returns an open destination connection
        load_query: Returns SQL text for a query identifier
        logger: Logger bound to the job; one is created when omitted
        metrics: Job metrics; the process-wide instance when omitted
        policy: Status codes treated as a lost connection
        dialect: Savepoint dialect; detected from the destination when omitted

    Returns:
        JobResult describing the run
    """
    if definition.transaction_mode is not None:
        config = config.with_transaction_mode(definition.transaction_mode)

    run = JobRun(
        definition.name,
        KIND,
        config,
        acquire_source,
        acquire_destination,
        load_query,
        logger=logger,
        metrics=metrics,
        policy=policy,
    )

    def body(run: JobRun) -> None:
        _migrate(run, definition, dialect)

    return run_job(run, definition.count_sql, body)


def _migrate(run: JobRun, definition: MigrationDefinition, dialect: SavepointDialect | None) -> None:
    config = run.config
    diagnostics = run.diagnostics
    batch_size = config.batch_size

    select_sql = run.load_query(definition.source_query, "source select")
    destination = run.acquire_destination()
    diagnostics.debug(f"write SQL:{definition.write_sql}")
    diagnostics.info(
        f"transaction mode={config.transaction_mode.value}, batch size={batch_size}, "
        f"fetch size={config.source_fetch_size}"
    )

    transactions = TransactionController(
        destination, config.transaction_mode, dialect or dialect_for(destination)
    )
    transactions.begin()
    writer = BatchWriter(destination, definition.write_sql, run.name, run.metrics)
    stream = run.open_stream(run.source, select_sql, config.source_fetch_size, "source")

    processed = 0
    aborted = False
    try:
        for record in run.records(stream):
            processed += 1
            ctx = RecordContext(ordinal=processed, expected=run.result.expected)
            identifier = None
            try:
                transactions.begin_record(processed)

                if definition.other_work is not None:
                    definition.other_work(record, destination, ctx)

                outcome = ensure_outcome(definition.bind(record, ctx), "bind")
                if is_skip(outcome):
                    raise _RecordSkipped(outcome)

                identifier = safe_identifier(definition.identify, record)

                if batch_size > 1:
                    if not ctx.write_skipped:
                        writer.add(outcome.params)
                    diagnostics.progress(processed, "inserting reserved", identifier, ctx.comment)
                    if processed % batch_size == 0 or stream.at_last():
                        executed = writer.execute_batch()
                        diagnostics.info(f"process:{diagnostics.position(processed)} batch executed ({executed})")
                else:
                    if not ctx.write_skipped:
                        writer.execute_one(outcome.params)
                    diagnostics.progress(processed, "inserted", identifier, ctx.comment)

                result = RecordOutcome.SUCCESS

            except _RecordSkipped as skip:
                identifier = identifier or safe_identifier(definition.identify, record)
                diagnostics.skipped(processed, skip.outcome.message, identifier)
                result = RecordOutcome.SKIPPED

            except Exception as e:
                classified = classify(e, run.policy)
                identifier = identifier or safe_identifier(definition.identify, record)
                diagnostics.record_failure(classified, processed, identifier, ctx.comment)
                aborted = classified.is_fatal
                result = _tally_for(classified)

            succeeded = result is RecordOutcome.SUCCESS
            if not _end_unit(run, transactions, succeeded, aborted, processed, identifier, ctx.comment):
                aborted = True
                result = RecordOutcome.FATAL
            run.tally(result)

            if aborted:
                break

        aborted = aborted or run.source_lost

        if not aborted and writer.pending:
            aborted = not _flush_trailing(run, writer, transactions, processed)

        run.finish_stream(processed)

        if aborted:
            run.result.status = JobStatus.ABORTED
        else:
            transactions.finish()
    finally:
        run.close_quietly("destination write cursor", writer.close)
        run.close_quietly("source cursor", stream.close)


def _tally_for(classified: ClassifiedError) -> RecordOutcome:
    if classified.is_fatal:
        return RecordOutcome.FATAL
    if classified.classification is Classification.RECOVERABLE_SKIP:
        return RecordOutcome.SKIPPED
    return RecordOutcome.FAILED


def _end_unit(
    run: JobRun,
    transactions: TransactionController,
    succeeded: bool,
    aborted: bool,
    ordinal: int,
    identifier: str,
    comment: str = "",
) -> bool:
    """
    Commit or roll back the current unit of work.

    Returns False when it could not be ended. The transaction state is then
    unknown: everything uncommitted is rolled back and the job must stop.
    """
    diagnostics = run.diagnostics
    try:
        if succeeded:
            transactions.record_succeeded()
        else:
            transactions.record_failed()
        return True
    except Exception as e:
        if aborted:
            # connection already gone; the rollback is best-effort
            diagnostics.warning(f"{diagnostics.position(ordinal)} rollback after fatal error failed: {e}")
            return True
        diagnostics.transaction_failure(classify(e, run.policy), ordinal, identifier, comment)

    try:
        transactions.abandon()
    except Exception as e:
        diagnostics.warning(f"{diagnostics.position(ordinal)} rollback of the abandoned transaction failed: {e}")
    return False


def _flush_trailing(
    run: JobRun, writer: BatchWriter, transactions: TransactionController, processed: int
) -> bool:
    """
    Execute writes left pending because the last record was skipped or failed.

    Under ALL the writes get their own savepoint, so a failing batch is
    rolled back without losing earlier records. Returns False when the job
    must stop.
    """
    diagnostics = run.diagnostics
    diagnostics.debug(f"Executing {len(writer.pending)} pending writes after the last record")
    succeeded = False
    fatal = False
    try:
        transactions.begin_unit(PENDING_SAVEPOINT)
        executed = writer.execute_batch()
        diagnostics.info(f"process:{diagnostics.position(processed)} batch executed ({executed})")
        succeeded = True
    except Exception as e:
        classified = classify(e, run.policy)
        diagnostics.record_failure(classified, processed, PENDING_BATCH)
        fatal = classified.is_fatal
    return _end_unit(run, transactions, succeeded, fatal, processed, PENDING_BATCH) and not fatal
