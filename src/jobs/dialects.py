"""
Savepoint statements per database dialect.

DB-API has no savepoint calls, so the transaction controller issues them
as SQL. The dialect is detected from the connection's driver module.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SavepointDialect:
    name: str
    create: str
    release: str | None
    rollback: str

    def create_sql(self, savepoint: str) -> str:
        return self.create.format(name=savepoint)

    def release_sql(self, savepoint: str) -> str | None:
        """None when the dialect has no release statement."""
        return self.release.format(name=savepoint) if self.release else None

    def rollback_sql(self, savepoint: str) -> str:
        return self.rollback.format(name=savepoint)


ANSI = SavepointDialect(
    name="ansi",
    create="SAVEPOINT {name}",
    release="RELEASE SAVEPOINT {name}",
    rollback="ROLLBACK TO SAVEPOINT {name}",
)

POSTGRESQL = SavepointDialect(
    name="postgresql",
    create="SAVEPOINT {name}",
    release="RELEASE SAVEPOINT {name}",
    rollback="ROLLBACK TO SAVEPOINT {name}",
)

# SQL Server savepoints end with the enclosing transaction
SQLSERVER = SavepointDialect(
    name="sqlserver",
    create="SAVE TRANSACTION {name}",
    release=None,
    rollback="ROLLBACK TRANSACTION {name}",
)

DIALECTS = {d.name: d for d in (ANSI, POSTGRESQL, SQLSERVER)}


def get_db_type(connection: Any) -> str:
    """
    Detect database type from a connection

    Returns:
        'postgresql', 'sqlserver' or 'ansi'
    """
    module = type(connection).__module__
    if "psycopg" in module:
        return "postgresql"
    if "pyodbc" in module:
        return "sqlserver"
    return "ansi"


def dialect_for(connection: Any, name: str | None = None) -> SavepointDialect:
    """Dialect by explicit name, else detected from the connection."""
    if name:
        try:
            return DIALECTS[name.lower()]
        except KeyError:
            raise ValueError(f"Unknown savepoint dialect: {name}") from None
    return DIALECTS[get_db_type(connection)]
