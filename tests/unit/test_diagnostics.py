"""
Unit tests for src/jobs/diagnostics.py
"""

import logging

from dbfakes import FakeDatabaseError
from jobs.classifier import classify
from jobs.counting import CountVerdict
from jobs.diagnostics import UNKNOWN_IDENTIFIER, JobDiagnostics, safe_identifier
from jobs.errors import RecordValidationError


def last_record(caplog):
    return caplog.records[-1]


class TestPosition:
    """Test the ordinal prefix"""

    def test_without_expected_count(self):
        """Test the ordinal alone when no count is known"""
        assert JobDiagnostics("customers", "migration").position(3) == "3"

    def test_with_expected_count_and_comment(self):
        """Test the comment follows the ordinal and the count closes the prefix"""
        diagnostics = JobDiagnostics("customers", "migration")
        diagnostics.expected = 10

        assert diagnostics.position(3, "[retry]") == "3[retry] / 10"


class TestSafeIdentifier:
    """Test identifier hook guarding"""

    def test_hook_result_is_stringified(self):
        assert safe_identifier(lambda r: r * 2, 21) == "42"

    def test_failing_hook(self):
        """Test a failing identifier hook yields a placeholder"""
        def broken(record):
            raise KeyError("id")

        assert safe_identifier(broken, object()) == UNKNOWN_IDENTIFIER

    def test_missing_hook(self):
        assert safe_identifier(None) == UNKNOWN_IDENTIFIER


class TestRecordFailure:
    """Test failure lines per classification"""

    def test_fatal_is_critical(self, caplog):
        """Test lost connections are logged at CRITICAL"""
        # Arrange
        diagnostics = JobDiagnostics("customers", "migration")
        classified = classify(FakeDatabaseError("08S01", "link failure"))

        # Act
        with caplog.at_level(logging.INFO):
            diagnostics.record_failure(classified, 4, "id=4")

        # Assert
        critical = [r for r in caplog.records if r.levelno == logging.CRITICAL]
        assert len(critical) == 1
        assert "4 Exit because connection has broken. id:id=4 SQLState:08S01" in critical[0].getMessage()

    def test_skip_level_is_configurable(self, caplog):
        """Test validation skips use the caller's level"""
        diagnostics = JobDiagnostics("customers", "reconciliation")

        with caplog.at_level(logging.INFO):
            diagnostics.record_failure(
                classify(RecordValidationError("no key")), 2, "id=2", skip_level=logging.ERROR
            )

        assert [r.levelno for r in caplog.records] == [logging.ERROR]
        assert caplog.records[0].getMessage() == "2 id:id=2 no key"

    def test_structured_context_is_attached(self, caplog):
        """Test the record's context fields travel as extra data"""
        diagnostics = JobDiagnostics("customers", "migration")

        with caplog.at_level(logging.INFO):
            diagnostics.record_failure(classify(FakeDatabaseError("23505")), 5, "id=5")

        record = caplog.records[0]
        assert record.levelno == logging.ERROR
        assert record.ordinal == 5
        assert record.record_id == "id=5"
        assert record.sqlstate == "23505"
        assert record.job == "customers"

    def test_transaction_failure_is_critical(self, caplog):
        """Test a failed commit ends the job with the record's identifier"""
        # Arrange
        diagnostics = JobDiagnostics("customers", "migration")
        diagnostics.expected = 10
        classified = classify(FakeDatabaseError("40001", "could not serialize access"))

        # Act
        with caplog.at_level(logging.INFO):
            diagnostics.transaction_failure(classified, 3, "id=3")

        # Assert
        record = caplog.records[0]
        assert record.levelno == logging.CRITICAL
        assert record.getMessage().startswith(
            "3 / 10 Exit because the transaction could not be ended. id:id=3 SQLState:40001"
        )

    def test_transaction_failure_on_lost_connection(self, caplog):
        """Test a lost connection while committing reads like any broken link"""
        diagnostics = JobDiagnostics("customers", "migration")

        with caplog.at_level(logging.INFO):
            diagnostics.transaction_failure(classify(FakeDatabaseError("08S01")), 2, "id=2")

        assert "2 Exit because connection has broken. id:id=2" in caplog.records[0].getMessage()


class TestProgressAndVerdict:
    """Test success lines and the closing verdict"""

    def test_progress_line(self, caplog):
        """Test the progress line layout"""
        diagnostics = JobDiagnostics("customers", "migration")
        diagnostics.expected = 2

        with caplog.at_level(logging.INFO):
            diagnostics.progress(2, "inserted", "id=2")

        assert last_record(caplog).getMessage() == "process:2 / 2 inserted id=2"

    def test_skipped_line(self, caplog):
        """Test skip lines default to WARNING"""
        diagnostics = JobDiagnostics("customers", "migration")

        with caplog.at_level(logging.INFO):
            diagnostics.skipped(1, "inactive", "id=1")

        assert last_record(caplog).levelno == logging.WARNING
        assert last_record(caplog).getMessage() == "1 skipped id:id=1 inactive"

    def test_mismatch_verdict_is_warning(self, caplog):
        """Test a count mismatch is logged at WARNING"""
        diagnostics = JobDiagnostics("customers", "migration")
        diagnostics.expected = 5

        with caplog.at_level(logging.INFO):
            verdict = diagnostics.count_verdict(3)

        assert verdict is CountVerdict.FEWER_THAN_EXPECTED
        assert last_record(caplog).levelno == logging.WARNING
        assert "fewer records" in last_record(caplog).getMessage()

    def test_unvalidated_verdict_is_info(self, caplog):
        """Test a job without a count query finishes at INFO"""
        diagnostics = JobDiagnostics("customers", "migration")

        with caplog.at_level(logging.INFO):
            verdict = diagnostics.count_verdict(3)

        assert verdict is CountVerdict.NOT_VALIDATED
        assert last_record(caplog).levelno == logging.INFO
        assert "expected=n/a" in last_record(caplog).getMessage()
