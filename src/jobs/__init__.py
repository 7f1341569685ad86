"""
Shared core of migration and reconciliation jobs

Provides:
- config: job configuration and transaction modes
- cursor: streaming source reads
- counting: pre-flight count validation
- classifier: per-record error classification
- diagnostics: progress and failure reporting
- lifecycle: the job skeleton and JobResult
- cli: the ``migrator`` command
"""

from .errors import (
    EXIT_CODE_CONFIG,
    EXIT_CODE_OK,
    ConfigurationError,
    ConnectionAcquisitionError,
    ConnectionLostError,
    CountQueryError,
    MigratorError,
    QueryLoadError,
    RecordValidationError,
)
from .outcomes import PROCEED, Proceed, SkipWithReason

__version__ = "1.0.0"

__all__ = [
    "EXIT_CODE_CONFIG",
    "EXIT_CODE_OK",
    "ConfigurationError",
    "ConnectionAcquisitionError",
    "ConnectionLostError",
    "CountQueryError",
    "MigratorError",
    "QueryLoadError",
    "RecordValidationError",
    "PROCEED",
    "Proceed",
    "SkipWithReason",
]
