"""
Structured logging for migration and reconciliation jobs

Usage:
    from utils.logging import setup_logging, ContextLogger

    # Setup logging once at startup; serialize=True funnels every job's
    # records through a single writer thread
    setup_logging(level="INFO", log_file="/var/log/migrator/app.log", serialize=True)

    # Bind job context to every line
    logger = ContextLogger("jobs.migration", job="customers", kind="migration")
    logger.info("process:7 / 10 inserted 42", ordinal=7)
"""

from .config import configure_from_env, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger, SerializedLogSink

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
    "SerializedLogSink",
]
