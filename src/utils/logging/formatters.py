"""
Log formatters for structured and console logging.

Provides a JSON formatter for structured logs and a console formatter
with optional color support for human-readable output. Both render the
job context passed through ``extra``.
"""

import copy
import json
import logging
import os
import sys
import traceback
from datetime import UTC, datetime

# LogRecord attributes that are never treated as extra context
RESERVED_FIELDS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "asctime",
})

# Context promoted to top-level keys in JSON output
JOB_FIELDS = ("job", "kind")


def extra_context(record: logging.LogRecord) -> dict:
    """Context supplied through ``extra=`` on the logging call."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in RESERVED_FIELDS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging

    One JSON object per line: level, logger, message, job identity,
    source location and any extra context.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_hostname: bool = True,
        app_name: str = "db-migrator",
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_hostname = include_hostname
        self.app_name = app_name
        self.hostname = os.uname().nodename if include_hostname else None

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "app": self.app_name,
        }

        if self.include_timestamp:
            log_data["timestamp"] = datetime.fromtimestamp(
                record.created, UTC
            ).isoformat()

        if self.include_hostname and self.hostname:
            log_data["hostname"] = self.hostname

        context = extra_context(record)
        for key in JOB_FIELDS:
            if key in context:
                log_data[key] = context.pop(key)

        log_data["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        log_data["process"] = {
            "pid": record.process,
            "thread_name": record.threadName,
        }

        if record.exc_info and record.exc_info[0] is not None:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        if context:
            log_data["context"] = context

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable formatter with colors

    Lines look like ``2024-01-01 10:00:00 [INFO] jobs.migration: process:7 / 10
    inserted 42 [job=customers, ordinal=7]``.
    """

    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "CRITICAL": "\033[35m",   # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        # Other handlers share the record, so color a copy
        if self.use_colors and record.levelname in self.COLORS:
            record = copy.copy(record)
            record.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"

        formatted = super().format(record)

        extra_items = [
            f"{key}={value}"
            for key, value in extra_context(record).items()
            if value is not None
        ]
        if extra_items:
            formatted += f" [{', '.join(extra_items)}]"

        return formatted
