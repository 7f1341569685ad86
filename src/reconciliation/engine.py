"""
Reconciliation engine.

For every source record the destination lookup runs with parameters
prepared from that record. A missing counterpart or a mismatch is logged
at ERROR and the check moves on; only a lost connection stops it.
"""

import logging

from jobs.classifier import DEFAULT_POLICY, Classification, ClassificationPolicy, classify
from jobs.config import JobConfig
from jobs.cursor import Record
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
from jobs.outcomes import ensure_outcome, is_skip
from utils.logging import ContextLogger
from utils.metrics import JobMetrics

from .definition import ReconciliationDefinition
from .lookup import DestinationLookup

logger = logging.getLogger(__name__)

KIND = "reconciliation"


def run_reconciliation(
    definition: ReconciliationDefinition,
    config: JobConfig,
    acquire_source: ConnectionProvider,
    acquire_destination: ConnectionProvider,
    load_query: QueryLoader,
    logger: ContextLogger | None = None,
    metrics: JobMetrics | None = None,
    policy: ClassificationPolicy = DEFAULT_POLICY,
) -> JobResult:
    """
    Run one reconciliation job.

    Args:
        definition: Queries and hooks of the check
        config: Source and destination fetch sizes
        acquire_source: Returns an open source connection
        acquire_destination: Returns an open destination connection
        load_query: Returns SQL text for a query identifier
        logger: Logger bound to the job; one is created when omitted
        metrics: Job metrics; the process-wide instance when omitted
        policy: Status codes treated as a lost connection

    Returns:
        JobResult describing the run
    """
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
        _reconcile(run, definition)

    return run_job(run, definition.count_sql, body)


def _reconcile(run: JobRun, definition: ReconciliationDefinition) -> None:
    config = run.config
    diagnostics = run.diagnostics

    source_sql = run.load_query(definition.source_query, "source select")
    destination_sql = run.load_query(definition.destination_query, "destination select")
    destination = run.acquire_destination()

    lookup = DestinationLookup(destination, destination_sql, config.destination_fetch_size)
    stream = run.open_stream(run.source, source_sql, config.source_fetch_size, "source")

    processed = 0
    aborted = False
    try:
        for record in run.records(stream):
            processed += 1
            ctx = RecordContext(ordinal=processed, expected=run.result.expected)
            try:
                _check_record(run, definition, lookup, record, ctx)
            except Exception as e:
                classified = classify(e, run.policy)
                identifier = safe_identifier(definition.identify_source, record)
                diagnostics.record_failure(classified, processed, identifier, ctx.comment, skip_level=logging.ERROR)
                if classified.is_fatal:
                    run.tally(RecordOutcome.FATAL)
                    aborted = True
                elif classified.classification is Classification.RECOVERABLE_SKIP:
                    run.tally(RecordOutcome.SKIPPED)
                else:
                    run.tally(RecordOutcome.FAILED)

            if aborted:
                break

        aborted = aborted or run.source_lost
        run.finish_stream(processed)
        if aborted:
            run.result.status = JobStatus.ABORTED
    finally:
        run.close_quietly("destination lookup cursor", lookup.close)
        run.close_quietly("source cursor", stream.close)


def _check_record(
    run: JobRun,
    definition: ReconciliationDefinition,
    lookup: DestinationLookup,
    record: Record,
    ctx: RecordContext,
) -> None:
    """Look up and compare one source record."""
    diagnostics = run.diagnostics
    ordinal = ctx.ordinal

    prepared = ensure_outcome(definition.prepare(record, ctx), "prepare")
    source_id = safe_identifier(definition.identify_source, record)
    if is_skip(prepared):
        diagnostics.skipped(ordinal, prepared.message, source_id, level=logging.ERROR)
        run.tally(RecordOutcome.SKIPPED)
        return

    target = lookup.fetch(prepared.params)
    if target is None:
        diagnostics.error(
            f"{diagnostics.position(ordinal, ctx.comment)} comparison target not found srcid:{source_id}",
            ordinal=ordinal,
            record_id=source_id,
        )
        run.tally(RecordOutcome.NOT_FOUND)
        return

    checked = ensure_outcome(definition.check(record, target, ctx), "check")
    destination_id = safe_identifier(definition.identify_destination, target)
    if is_skip(checked):
        diagnostics.error(
            f"{diagnostics.position(ordinal, ctx.comment)} mismatch srcid:{source_id} "
            f"destid:{destination_id} {checked.message}",
            ordinal=ordinal,
            record_id=source_id,
        )
        run.tally(RecordOutcome.MISMATCH)
        return

    diagnostics.progress(ordinal, "check OK", f"srcid:{source_id} destid:{destination_id}", ctx.comment)
    run.tally(RecordOutcome.SUCCESS)

