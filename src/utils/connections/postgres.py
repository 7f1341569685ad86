"""PostgreSQL connection factory."""

from typing import Any

import psycopg2
import psycopg2.extensions

from .base import ConnectionFactory


class PostgresConnectionFactory(ConnectionFactory):
    """Connections to PostgreSQL through psycopg2."""

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        **kwargs: Any,
    ):
        """
        Args:
            host: PostgreSQL host
            port: PostgreSQL port
            database: Database name
            user: Username
            password: Password
            **kwargs: Additional arguments for ConnectionFactory
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password

        super().__init__(**kwargs)

    def _create_connection(self) -> psycopg2.extensions.connection:
        # The engines set autocommit according to the transaction mode
        return psycopg2.connect(
            host=self.host,
            port=self.port,
            database=self.database,
            user=self.user,
            password=self.password,
            connect_timeout=self.connect_timeout,
        )

    def describe(self) -> str:
        return f"postgresql://{self.host}:{self.port}/{self.database}"

    def _get_db_type(self) -> str:
        return "postgresql"
