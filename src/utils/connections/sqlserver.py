"""SQL Server connection factory."""

from typing import Any

import pyodbc

from .base import ConnectionFactory


class SQLServerConnectionFactory(ConnectionFactory):
    """Connections to SQL Server through pyodbc."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        driver: str = "ODBC Driver 18 for SQL Server",
        connection_string: str | None = None,
        **kwargs: Any,
    ):
        """
        Args:
            host: SQL Server host (required if connection_string not provided)
            port: SQL Server port (required if connection_string not provided)
            database: Database name (required if connection_string not provided)
            user: Username (required if connection_string not provided)
            password: Password (required if connection_string not provided)
            driver: ODBC driver name
            connection_string: Complete ODBC connection string
            **kwargs: Additional arguments for ConnectionFactory
        """
        if not connection_string and not all([host, port, database, user, password]):
            raise ValueError(
                "Either connection_string or all of (host, port, database, user, password) must be provided"
            )
        self.connection_string = connection_string
        self.host = host or self._extract_from_conn_str(connection_string or "", "SERVER")
        self.port = port
        self.database = database or self._extract_from_conn_str(connection_string or "", "DATABASE")
        self.user = user
        self.password = password
        self.driver = driver

        super().__init__(**kwargs)

    @staticmethod
    def _extract_from_conn_str(conn_str: str, key: str) -> str:
        for part in conn_str.split(";"):
            if part.strip().upper().startswith(key.upper() + "="):
                return part.split("=", 1)[1].strip()
        return "unknown"

    def build_connection_string(self) -> str:
        if self.connection_string:
            return self.connection_string
        return (
            f"DRIVER={{{self.driver}}};"
            f"SERVER={self.host},{self.port};"
            f"DATABASE={self.database};"
            f"UID={self.user};"
            f"PWD={self.password};"
            f"TrustServerCertificate=yes;"
            f"Encrypt=yes;"
        )

    def _create_connection(self) -> pyodbc.Connection:
        return pyodbc.connect(self.build_connection_string(), timeout=self.connect_timeout)

    def describe(self) -> str:
        return f"sqlserver://{self.host}/{self.database}"

    def _get_db_type(self) -> str:
        return "sqlserver"
