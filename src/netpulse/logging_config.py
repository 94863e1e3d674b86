"""
Logging configuration for NetPulse.

Engine log records carry the traceroute run they belong to in a
``run_id`` attribute (``extra={"run_id": ...}``); records without one
are shown with ``-``.
"""

import logging
import sys
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

CONSOLE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s [%(run_id)s]: %(message)s'
FILE_FORMAT = (
    '%(asctime)s | %(levelname)-8s | %(name)-24s | %(run_id)-8s | '
    '%(threadName)-20s | %(lineno)-4d | %(message)s'
)
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class RunContextFormatter(logging.Formatter):
    """Formatter that tolerates records logged outside a traceroute run."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, 'run_id'):
            record.run_id = '-'
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True,
) -> logging.Logger:
    """
    Set up logging for NetPulse.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Also write DEBUG and above to this rotating file
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
        enable_console: Log to stderr so streamed results on stdout stay clean

    Returns:
        Configured package logger
    """
    logger = logging.getLogger("netpulse")
    logger.setLevel(logging.DEBUG if log_file else getattr(logging, level.upper()))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(getattr(logging, level.upper()))
        console_handler.setFormatter(RunContextFormatter(CONSOLE_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(RunContextFormatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False

    return logger


def configure_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Quick logging configuration used by the CLI."""
    setup_logging(level="DEBUG" if debug else "WARNING", log_file=log_file)


class ErrorTracker:
    """Count errors by type. Safe to use from several run workers."""

    def __init__(self):
        self.errors: dict[str, int] = {}
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    def log_error(
        self,
        error_type: str,
        message: str,
        exception: BaseException | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """
        Log an error and bump its counter.

        Args:
            error_type: Type of error (e.g., 'traceroute_failed')
            message: Error message
            exception: Exception object if available
            context: Additional context; a 'run_id' key tags the record
        """
        with self._lock:
            self.errors[error_type] = self.errors.get(error_type, 0) + 1

        log_msg = f"{error_type}: {message}"
        if context:
            log_msg += f" | Context: {context}"

        extra = {"run_id": context["run_id"]} if context and "run_id" in context else None
        self.logger.error(log_msg, exc_info=exception, extra=extra)

    def get_error_counts(self) -> dict[str, int]:
        with self._lock:
            return self.errors.copy()

    def reset_counts(self) -> None:
        with self._lock:
            self.errors.clear()


# Global error tracker instance
_error_tracker = ErrorTracker()


def track_error(
    error_type: str,
    message: str,
    exception: BaseException | None = None,
    context: dict[str, Any] | None = None,
) -> None:
    """Track an error globally."""
    _error_tracker.log_error(error_type, message, exception, context)


def get_error_stats() -> dict[str, int]:
    """Get global error statistics."""
    return _error_tracker.get_error_counts()


def reset_error_stats() -> None:
    """Reset global error statistics."""
    _error_tracker.reset_counts()
