"""
Logging handlers and wrappers.

Provides ContextLogger for binding job context to every line, and
SerializedLogSink, the single-consumer queue that keeps concurrent jobs
from interleaving output inside a line.
"""

import logging
import logging.handlers
import queue
from typing import Any


class ContextLogger:
    """
    Logger wrapper that adds contextual information to all log messages

    Usage:
        logger = ContextLogger("jobs.migration", job="customers")
        logger.info("Record inserted", ordinal=7)
        # Output includes both job and ordinal
    """

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def log(
        self,
        level: int,
        msg: str,
        *args,
        exc_info=None,
        **kwargs
    ) -> None:
        """
        Log at an explicit level, merging bound context with ``kwargs``

        Args:
            level: Log level
            msg: Log message
            *args: Message format args
            exc_info: Exception info
            **kwargs: Additional context
        """
        extra = {**self.context, **kwargs}

        self.logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            extra=extra,
        )

    def debug(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self.log(logging.ERROR, msg, *args, exc_info=exc_info, **kwargs)

    def critical(self, msg: str, *args, exc_info=None, **kwargs) -> None:
        self.log(logging.CRITICAL, msg, *args, exc_info=exc_info, **kwargs)

    def bind(self, **context) -> "ContextLogger":
        """Return a new logger with additional bound context."""
        return ContextLogger(self.logger.name, **{**self.context, **context})

    def get_context(self) -> dict[str, Any]:
        return self.context.copy()


class SerializedLogSink:
    """
    Route every log record through one queue drained by a single thread.

    All producers (concurrently running jobs) only enqueue; the listener
    thread is the only writer to the real handlers, so a line is always
    written whole.
    """

    def __init__(self, handlers: list[logging.Handler], maxsize: int = 0):
        self.queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self.queue_handler = logging.handlers.QueueHandler(self.queue)
        self.handlers = list(handlers)
        self.listener = logging.handlers.QueueListener(
            self.queue, *self.handlers, respect_handler_level=True
        )
        self._started = False

    def start(self) -> None:
        if not self._started:
            self.listener.start()
            self._started = True

    def stop(self) -> None:
        """Flush queued records and stop the listener thread."""
        if self._started:
            self.listener.stop()
            self._started = False

    @property
    def running(self) -> bool:
        return self._started
