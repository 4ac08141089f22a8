"""
Structured logging system for the job search store.

Provides centralized logging with console and file outputs, log levels,
and metrics tracking for monitoring write health (rejected duplicates,
validation failures, dangling references).
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for monitoring store writes.
    """

    def __init__(
        self,
        name: str = "jobsearch",
        level: str = "INFO",
        log_dir: Optional[Path] = None,
        enable_file: bool = True,
        enable_console: bool = True,
    ):
        """
        Initialize the structured logger.

        Args:
            name: Logger name
            level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            log_dir: Directory for log files (default: logs/)
            enable_file: Write logs to file
            enable_console: Output logs to console
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(getattr(logging, level.upper()))
        self.logger.handlers.clear()

        self.metrics = {
            "writes": 0,
            "writes_by_collection": {},
            "validation_failures": 0,
            "duplicates_rejected": 0,
            "referential_warnings": 0,
            "errors_by_type": {},
        }

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(getattr(logging, level.upper()))
            console_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            console_handler.setFormatter(console_formatter)
            self.logger.addHandler(console_handler)

        if enable_file:
            if log_dir is None:
                log_dir = Path("logs")
            log_dir.mkdir(parents=True, exist_ok=True)

            log_file = log_dir / f"jobsearch_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

    def set_level(self, level: str):
        """Change the logger and console level; the file handler keeps DEBUG."""
        numeric = getattr(logging, level.upper())
        self.logger.setLevel(numeric)
        for handler in self.logger.handlers:
            if not isinstance(handler, logging.FileHandler):
                handler.setLevel(numeric)

    def debug(self, message: str, **kwargs):
        """Log debug message with optional context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs):
        """Log info message with optional context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message with optional context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, **kwargs):
        """Log error message with optional context."""
        self._log(logging.ERROR, message, kwargs)

    def critical(self, message: str, **kwargs):
        """Log critical message with optional context."""
        self._log(logging.CRITICAL, message, kwargs)

    def _log(self, level: int, message: str, context: dict):
        if context:
            message = f"{message} | Context: {json.dumps(context, default=str)}"
        self.logger.log(level, message)

    # Metric tracking methods

    def record_write(self, collection: str, count: int = 1):
        """Record documents written to a collection."""
        self.metrics["writes"] += count
        by_collection = self.metrics["writes_by_collection"]
        by_collection[collection] = by_collection.get(collection, 0) + count

    def record_validation_failure(self, kind: str):
        """Record a document rejected by the schema registry."""
        self.metrics["validation_failures"] += 1
        self._record_error(f"ValidationError_{kind}")

    def record_duplicate(self, collection: str):
        """Record an insert rejected by a unique index."""
        self.metrics["duplicates_rejected"] += 1
        self._record_error(f"Duplicate_{collection}")

    def record_referential_warning(self, collection: str):
        """Record a write whose parent document is missing."""
        self.metrics["referential_warnings"] += 1

    def _record_error(self, error_type: str):
        errors = self.metrics["errors_by_type"]
        errors[error_type] = errors.get(error_type, 0) + 1

    def get_metrics(self) -> dict:
        """Return a snapshot of current metrics."""
        metrics_copy = self.metrics.copy()
        metrics_copy["writes_by_collection"] = dict(self.metrics["writes_by_collection"])
        metrics_copy["errors_by_type"] = dict(self.metrics["errors_by_type"])
        return metrics_copy

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Store Session Metrics ===")
        self.info(f"Writes: {metrics['writes']}")
        for collection, count in sorted(metrics["writes_by_collection"].items()):
            self.info(f"  {collection}: {count}")
        self.info(f"Validation failures: {metrics['validation_failures']}")
        self.info(f"Duplicates rejected: {metrics['duplicates_rejected']}")
        self.info(f"Referential warnings: {metrics['referential_warnings']}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "jobsearch",
    level: Optional[str] = None,
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Level and log directory default to JOBSEARCH_LOG_LEVEL and
    JOBSEARCH_LOG_DIR. File output is only enabled when a log directory
    is configured.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        if level is None:
            level = os.getenv("JOBSEARCH_LOG_LEVEL", "INFO")
        if "log_dir" not in kwargs and "enable_file" not in kwargs:
            env_dir = os.getenv("JOBSEARCH_LOG_DIR")
            kwargs["enable_file"] = bool(env_dir)
            if env_dir:
                kwargs["log_dir"] = Path(env_dir)
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
