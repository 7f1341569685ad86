"""
Logging configuration for migration and reconciliation jobs.

Provides setup functions for configuring application-wide logging
with support for file rotation, console output, JSON formatting and a
serialized single-consumer sink for concurrently running jobs.
"""

import logging
import logging.handlers
import os
import sys

from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import SerializedLogSink

_sink: SerializedLogSink | None = None


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = "db-migrator",
    max_bytes: int = 100 * 1024 * 1024,  # 100MB
    backup_count: int = 5,
    serialize: bool = False,
) -> SerializedLogSink | None:
    """
    Configure logging for the application

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (if None, file logging is disabled)
        console_output: Whether to output to console
        json_format: Use JSON format for both console and file logs
        app_name: Application name for log context
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated log files to keep
        serialize: Route all records through one queue and listener thread

    Returns:
        The running SerializedLogSink when ``serialize`` is set, else None
    """
    global _sink

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    # Replace any previous configuration, including a running sink
    if _sink is not None:
        _sink.stop()
        _sink = None
    root_logger.handlers.clear()

    handlers: list[logging.Handler] = []

    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        if json_format:
            console_handler.setFormatter(JSONFormatter(app_name=app_name))
        else:
            console_handler.setFormatter(ConsoleFormatter(use_colors=True))
        handlers.append(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(numeric_level)
        if json_format:
            file_handler.setFormatter(JSONFormatter(app_name=app_name))
        else:
            file_handler.setFormatter(ConsoleFormatter(use_colors=False))
        handlers.append(file_handler)

    if serialize and handlers:
        _sink = SerializedLogSink(handlers)
        root_logger.addHandler(_sink.queue_handler)
        _sink.start()
    else:
        for handler in handlers:
            root_logger.addHandler(handler)

    # Drivers and exporters are noisy at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(
        f"Logging initialized: level={level}, file={log_file or 'none'}, "
        f"console={console_output}, json={json_format}, serialized={_sink is not None}"
    )
    return _sink


def shutdown_logging() -> None:
    """
    Drain the serialized sink and release all handlers.

    Call during application shutdown so queued records and rotating file
    handles are flushed.
    """
    global _sink

    if _sink is not None:
        _sink.stop()
        for handler in _sink.handlers:
            handler.close()
        _sink = None

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)


def configure_from_env() -> SerializedLogSink | None:
    """
    Configure logging from environment variables

    Environment variables:
        LOG_LEVEL: Log level (default: INFO)
        LOG_FILE: Log file path (default: none)
        LOG_JSON: Use JSON format (default: false)
        LOG_CONSOLE: Enable console output (default: true)
        LOG_SERIALIZE: Use the queue-fed sink (default: true)
    """
    def flag(name: str, default: str) -> bool:
        return os.getenv(name, default).lower() in ("true", "1", "yes")

    return setup_logging(
        level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE"),
        console_output=flag("LOG_CONSOLE", "true"),
        json_format=flag("LOG_JSON", "false"),
        serialize=flag("LOG_SERIALIZE", "true"),
    )
