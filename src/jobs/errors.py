"""
Exception taxonomy for migration and reconciliation jobs.

Job-level errors (configuration, connection acquisition, query loading,
count query) end a job before its record loop starts. Record-level errors
are classified by :mod:`jobs.classifier` and never escape the loop.
"""

# SQLSTATE sent by ODBC/JDBC drivers when the link to the server is lost
SQLSTATE_CONNECTION_FAILURE = "08S01"
# PostgreSQL connection_failure; also assigned to psycopg2 errors raised
# after the server link dropped, which carry no pgcode
SQLSTATE_PG_CONNECTION_FAILURE = "08006"
# Defined for reference; deadlocks are handled like any other record error
SQLSTATE_DEADLOCK = "41000"

EXIT_CODE_OK = 0
EXIT_CODE_CONFIG = 78


class MigratorError(Exception):
    """Base exception for all job errors."""

    pass


class ConfigurationError(MigratorError):
    """Raised when a required setting is missing, empty or invalid."""

    def __init__(self, key: str, value: object = None, reason: str = "setting is illegal"):
        self.key = key
        self.value = value
        super().__init__(f"{key} {reason} [{'' if value is None else value}]")


class ConnectionAcquisitionError(MigratorError):
    """Raised when a source or destination connection cannot be opened."""

    def __init__(self, role: str, message: str, sqlstate: str | None = None):
        self.role = role
        self.sqlstate = sqlstate
        super().__init__(f"Could not acquire {role} connection: {message}")


class QueryLoadError(MigratorError):
    """Raised when query text cannot be read from its source."""

    def __init__(self, identifier: str, message: str):
        self.identifier = identifier
        super().__init__(f"Could not load query '{identifier}': {message}")


class CountQueryError(MigratorError):
    """Raised when the pre-flight count query fails or yields no usable number."""

    pass


class ConnectionLostError(MigratorError):
    """Raised when the underlying database connection has failed mid-job."""

    def __init__(self, message: str, sqlstate: str | None = SQLSTATE_CONNECTION_FAILURE):
        self.sqlstate = sqlstate
        super().__init__(message)


class RecordValidationError(MigratorError):
    """
    Raised by hooks to abandon the current record and continue.

    Hooks should prefer returning ``SkipWithReason``; the exception form is
    accepted for code that validates deep inside helper functions.
    """

    pass
