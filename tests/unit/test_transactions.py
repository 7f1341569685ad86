"""
Unit tests for src/migration/transactions.py and src/jobs/dialects.py
"""

import pytest

from dbfakes import FakeConnection
from jobs.config import TransactionMode
from jobs.dialects import ANSI, POSTGRESQL, SQLSERVER, dialect_for, get_db_type
from migration.transactions import PENDING_SAVEPOINT, TransactionController, savepoint_name


def executed(connection):
    return [sql for _, sql, _ in connection.statements("execute")]


class TestDialects:
    """Test savepoint statements per dialect"""

    def test_ansi_statements(self):
        """Test ANSI savepoint SQL"""
        assert ANSI.create_sql("sp_1") == "SAVEPOINT sp_1"
        assert ANSI.release_sql("sp_1") == "RELEASE SAVEPOINT sp_1"
        assert ANSI.rollback_sql("sp_1") == "ROLLBACK TO SAVEPOINT sp_1"

    def test_sqlserver_has_no_release(self):
        """Test SQL Server uses SAVE TRANSACTION and has no release"""
        assert SQLSERVER.create_sql("sp_2") == "SAVE TRANSACTION sp_2"
        assert SQLSERVER.release_sql("sp_2") is None
        assert SQLSERVER.rollback_sql("sp_2") == "ROLLBACK TRANSACTION sp_2"

    def test_detects_dialect_from_driver_module(self):
        """Test unknown drivers fall back to ANSI"""
        assert get_db_type(FakeConnection()) == "ansi"
        assert dialect_for(FakeConnection()) is ANSI

    def test_explicit_dialect_name(self):
        """Test a dialect can be chosen by name"""
        assert dialect_for(FakeConnection(), "PostgreSQL") is POSTGRESQL

    def test_unknown_dialect_name(self):
        """Test an unknown name raises ValueError"""
        with pytest.raises(ValueError):
            dialect_for(FakeConnection(), "oracle")


class TestTransactionController:
    """Test commit behavior per transaction mode"""

    def test_none_mode_is_autocommit(self):
        """Test NONE turns autocommit on and never commits"""
        # Arrange
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.NONE, ANSI)

        # Act
        controller.begin()
        controller.begin_record(1)
        controller.record_succeeded()
        controller.record_failed()
        controller.finish()

        # Assert
        assert connection.autocommit is True
        assert connection.commits == 0
        assert connection.rollbacks == 0
        assert connection.calls == []

    def test_by_record_commits_and_rolls_back(self):
        """Test BY_RECORD commits successes and rolls back failures"""
        # Arrange
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.BY_RECORD, ANSI)
        controller.begin()

        # Act
        for ordinal, ok in enumerate([True, False, True], start=1):
            controller.begin_record(ordinal)
            if ok:
                controller.record_succeeded()
            else:
                controller.record_failed()
        controller.finish()

        # Assert
        assert connection.autocommit is False
        assert (connection.commits, connection.rollbacks) == (2, 1)
        assert (controller.commits, controller.rollbacks) == (2, 1)
        assert connection.calls == []

    def test_all_mode_uses_savepoints(self):
        """Test ALL issues a savepoint per record and one commit"""
        # Arrange
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.ALL, ANSI)
        controller.begin()

        # Act
        controller.begin_record(1)
        controller.record_succeeded()
        controller.begin_record(2)
        controller.record_failed()
        controller.finish()

        # Assert
        assert executed(connection) == [
            "SAVEPOINT sp_1",
            "RELEASE SAVEPOINT sp_1",
            "SAVEPOINT sp_2",
            "ROLLBACK TO SAVEPOINT sp_2",
        ]
        assert (controller.releases, controller.savepoint_rollbacks) == (1, 1)
        assert connection.commits == 1
        assert connection.rollbacks == 0

    def test_all_mode_on_sqlserver_counts_release_without_sql(self):
        """Test a dialect without release still counts the savepoint as released"""
        # Arrange
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.ALL, SQLSERVER)
        controller.begin()

        # Act
        controller.begin_record(7)
        controller.record_succeeded()

        # Assert
        assert executed(connection) == ["SAVE TRANSACTION sp_7"]
        assert controller.releases == 1

    def test_resolving_twice_is_a_no_op(self):
        """Test a savepoint is resolved only once"""
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.ALL, ANSI)

        controller.begin_record(1)
        controller.record_failed()
        controller.record_failed()

        assert controller.savepoint_rollbacks == 1

    def test_savepoint_cursors_are_closed(self):
        """Test every statement cursor is closed"""
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.ALL, ANSI)

        controller.begin_record(1)
        controller.record_succeeded()

        assert all(cursor.closed for cursor in connection.cursors)

    def test_savepoint_name(self):
        """Test savepoints are named by ordinal"""
        assert savepoint_name(42) == "sp_42"

    def test_named_unit_under_all(self):
        """Test a named savepoint can wrap writes outside any record"""
        # Arrange
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.ALL, ANSI)

        # Act
        controller.begin_unit(PENDING_SAVEPOINT)
        controller.record_failed()

        # Assert
        assert executed(connection) == ["SAVEPOINT sp_pending", "ROLLBACK TO SAVEPOINT sp_pending"]

    def test_named_unit_is_a_no_op_outside_all(self):
        """Test BY_RECORD opens no savepoint for a named unit"""
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.BY_RECORD, ANSI)

        controller.begin_unit(PENDING_SAVEPOINT)

        assert connection.calls == []

    @pytest.mark.parametrize(
        "mode,rollbacks",
        [(TransactionMode.NONE, 0), (TransactionMode.BY_RECORD, 1), (TransactionMode.ALL, 1)],
    )
    def test_abandon_rolls_back_uncommitted_work(self, mode, rollbacks):
        """Test abandoning rolls back the connection unless it autocommits"""
        # Arrange
        connection = FakeConnection()
        controller = TransactionController(connection, mode, ANSI)
        controller.begin_record(1)

        # Act
        controller.abandon()

        # Assert
        assert connection.rollbacks == rollbacks
        assert controller.rollbacks == rollbacks

    def test_abandoned_savepoint_is_not_rolled_back_again(self):
        """Test the open savepoint is dropped with the abandoned transaction"""
        connection = FakeConnection()
        controller = TransactionController(connection, TransactionMode.ALL, ANSI)
        controller.begin_record(1)

        controller.abandon()
        controller.record_failed()

        assert connection.count("ROLLBACK TO SAVEPOINT") == 0
        assert controller.savepoint_rollbacks == 0
