"""
Unit tests for src/utils/connections
"""

from unittest.mock import Mock, patch

import pytest

from dbfakes import FakeDatabaseError
from jobs.errors import ConnectionAcquisitionError
from utils.connections import (
    PostgresConnectionFactory,
    SQLServerConnectionFactory,
    create_connection_factory,
)

PG_SETTINGS = {
    "host": "pg.internal",
    "port": 5432,
    "database": "warehouse",
    "user": "migrator",
    "password": "pw",
}


class TestCreateConnectionFactory:
    """Test factory selection"""

    def test_postgresql(self):
        """Test postgresql settings build a psycopg2 factory"""
        factory = create_connection_factory("PostgreSQL", "destination", PG_SETTINGS)

        assert isinstance(factory, PostgresConnectionFactory)
        assert factory.role == "destination"
        assert factory.describe() == "postgresql://pg.internal:5432/warehouse"

    def test_sqlserver_with_connection_string(self):
        """Test a raw ODBC string is accepted for SQL Server"""
        factory = create_connection_factory(
            "sqlserver", "source", {"connection_string": "DRIVER={x};SERVER=mssql;DATABASE=legacy;"}
        )

        assert isinstance(factory, SQLServerConnectionFactory)
        assert factory.describe() == "sqlserver://mssql/legacy"

    def test_unsupported_type(self):
        """Test unknown database types raise ValueError"""
        with pytest.raises(ValueError, match="Unsupported database type"):
            create_connection_factory("oracle", "source", {})

    def test_sqlserver_requires_credentials(self):
        """Test SQL Server needs either a connection string or every setting"""
        with pytest.raises(ValueError):
            create_connection_factory("sqlserver", "source", {"host": "mssql"})


class TestPostgresConnectionFactory:
    """Test PostgreSQL connections"""

    @patch("utils.connections.postgres.psycopg2.connect")
    def test_connect(self, mock_connect):
        """Test settings and timeout reach psycopg2"""
        # Arrange
        connection = Mock()
        mock_connect.return_value = connection
        factory = PostgresConnectionFactory(role="destination", connect_timeout=5, **PG_SETTINGS)

        # Act
        result = factory()

        # Assert
        assert result is connection
        mock_connect.assert_called_once_with(
            host="pg.internal",
            port=5432,
            database="warehouse",
            user="migrator",
            password="pw",
            connect_timeout=5,
        )

    @patch("utils.connections.postgres.psycopg2.connect")
    def test_failure_raises_acquisition_error(self, mock_connect):
        """Test driver errors become ConnectionAcquisitionError"""
        mock_connect.side_effect = FakeDatabaseError("08001", "could not connect")
        factory = PostgresConnectionFactory(role="destination", **PG_SETTINGS)

        with pytest.raises(ConnectionAcquisitionError) as exc_info:
            factory()

        assert exc_info.value.role == "destination"
        assert exc_info.value.sqlstate == "08001"


class TestSQLServerConnectionFactory:
    """Test SQL Server connections"""

    def test_connection_string_from_settings(self):
        """Test the ODBC string is assembled from settings"""
        factory = SQLServerConnectionFactory(
            host="mssql", port=1433, database="legacy", user="sa", password="pw"
        )

        conn_str = factory.build_connection_string()

        assert "SERVER=mssql,1433;" in conn_str
        assert "DATABASE=legacy;" in conn_str
        assert "DRIVER={ODBC Driver 18 for SQL Server};" in conn_str

    @patch("utils.connections.sqlserver.pyodbc.connect")
    def test_connect(self, mock_connect):
        """Test the login timeout is passed to pyodbc"""
        factory = SQLServerConnectionFactory(connection_string="DSN=legacy", connect_timeout=3)

        factory()

        mock_connect.assert_called_once_with("DSN=legacy", timeout=3)

    def test_describe_never_includes_password(self):
        """Test log descriptions omit credentials"""
        factory = SQLServerConnectionFactory(
            host="mssql", port=1433, database="legacy", user="sa", password="secret-pw"
        )

        assert "secret-pw" not in factory.describe()
