"""
Progress and failure diagnostics for a running job.

Every line carries the record's ordinal, the expected count when one is
known, and the caller-supplied record identifier. Context fields are also
attached as structured ``extra`` data for the JSON formatter.
"""

import logging
from collections.abc import Callable
from typing import Any

from utils.logging import ContextLogger
from utils.tracing import add_span_event

from .classifier import Classification, ClassifiedError
from .counting import CountVerdict, compare_counts

UNKNOWN_IDENTIFIER = "<unavailable>"

VERDICT_MESSAGES = {
    CountVerdict.FEWER_THAN_EXPECTED: "Processed fewer records than the expected count.",
    CountVerdict.MORE_THAN_EXPECTED: "Processed more records than the expected count.",
    CountVerdict.MATCH: "Processed count matched the expected count.",
}


def safe_identifier(identify: Callable[..., str] | None, *args: Any) -> str:
    """Call an identifier hook; a failing hook must not hide the real error."""
    if identify is None:
        return UNKNOWN_IDENTIFIER
    try:
        return str(identify(*args))
    except Exception as e:
        logging.getLogger(__name__).debug(f"Identifier hook failed: {type(e).__name__}: {e}")
        return UNKNOWN_IDENTIFIER


class JobDiagnostics:
    """Formats and emits the diagnostics of one job run."""

    def __init__(self, job_name: str, kind: str, logger: ContextLogger | None = None):
        self.job_name = job_name
        self.kind = kind
        self.log = logger or ContextLogger(f"jobs.{kind}", job=job_name, kind=kind)
        self.expected: int | None = None

    def position(self, ordinal: int, comment: str = "") -> str:
        """``7`` or ``7 / 10`` plus any per-record comment."""
        text = f"{ordinal}{comment}"
        if self.expected is not None:
            text += f" / {self.expected}"
        return text

    def banner(self, text: str) -> None:
        self.log.info(f"************ {text} ************")

    def info(self, msg: str, **context: Any) -> None:
        self.log.info(msg, **context)

    def debug(self, msg: str, **context: Any) -> None:
        self.log.debug(msg, **context)

    def warning(self, msg: str, **context: Any) -> None:
        self.log.warning(msg, **context)

    def error(self, msg: str, **context: Any) -> None:
        self.log.error(msg, **context)

    def fatal(self, msg: str, exc: BaseException | None = None, **context: Any) -> None:
        self.log.critical(msg, **context)
        if exc is not None:
            self.log.debug("Traceback for fatal error", exc_info=exc)

    def progress(self, ordinal: int, action: str, identifier: str, comment: str = "") -> None:
        """Per-record success line."""
        self.log.info(
            f"process:{self.position(ordinal, comment)} {action} {identifier}",
            ordinal=ordinal,
            record_id=identifier,
        )

    def skipped(self, ordinal: int, message: str, identifier: str, level: int = logging.WARNING) -> None:
        """A hook asked for this record to be abandoned."""
        self.log.log(
            level,
            f"{self.position(ordinal)} skipped id:{identifier} {message}",
            ordinal=ordinal,
            record_id=identifier,
        )

    def record_failure(
        self,
        classified: ClassifiedError,
        ordinal: int,
        identifier: str,
        comment: str = "",
        skip_level: int = logging.WARNING,
    ) -> None:
        """Report a classified per-record failure."""
        context = {
            "ordinal": ordinal,
            "record_id": identifier,
            "classification": classified.classification.value,
            "sqlstate": classified.sqlstate,
        }
        position = self.position(ordinal, comment)

        if classified.classification is Classification.FATAL_ABORT:
            self.log.critical(
                f"{position} Exit because connection has broken. "
                f"id:{identifier} {classified.describe()}",
                **context,
            )
        elif classified.classification is Classification.RECOVERABLE_SKIP:
            self.log.log(skip_level, f"{position} id:{identifier} {classified.describe()}", **context)
        else:
            self.log.error(f"{position} id:{identifier} {classified.describe()}", **context)

        add_span_event(
            "record_failed",
            ordinal=ordinal,
            classification=classified.classification.value,
            sqlstate=classified.sqlstate or "",
        )
        self.log.debug("Record failure traceback", exc_info=classified.error, ordinal=ordinal)

    def transaction_failure(
        self, classified: ClassifiedError, ordinal: int, identifier: str, comment: str = ""
    ) -> None:
        """The record's commit, release or rollback failed; the job stops."""
        if classified.is_fatal:
            self.record_failure(classified, ordinal, identifier, comment)
            return
        self.log.critical(
            f"{self.position(ordinal, comment)} Exit because the transaction could not be ended. "
            f"id:{identifier} {classified.describe()}",
            ordinal=ordinal,
            record_id=identifier,
            sqlstate=classified.sqlstate,
        )
        self.log.debug("Transaction failure traceback", exc_info=classified.error, ordinal=ordinal)

    def count_verdict(self, processed: int) -> CountVerdict:
        """Final diagnostic comparing processed and expected counts."""
        verdict = compare_counts(processed, self.expected)
        message = VERDICT_MESSAGES.get(verdict, "")
        level = logging.INFO if verdict in (CountVerdict.MATCH, CountVerdict.NOT_VALIDATED) else logging.WARNING
        self.log.log(
            level,
            f"{message} Finishing {self.kind} (processed={processed}, "
            f"expected={'n/a' if self.expected is None else self.expected}).".lstrip(),
            processed=processed,
            expected=self.expected,
            verdict=verdict.value,
        )
        return verdict
