"""
Logging configuration for taxassemble.

Provides console/file logging for the command-line tools, optional JSON
formatting, log rotation and timing of the assembly and assignment stages.
"""

import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs as JSON for easy parsing by log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data)


class PerformanceLogger:
    """
    Logger for stage timings.

    Tracks how long overlap graph construction, path extraction, contig
    building and containment filtering take, and how many items they handled.
    """

    def __init__(self, logger_name: str = 'taxassemble.performance'):
        self.logger = logging.getLogger(logger_name)
        self.metrics: Dict[str, list] = {}

    def log_operation_time(self, operation: str, duration_seconds: float, **kwargs):
        """
        Log operation timing.

        Args:
            operation: Name of the operation
            duration_seconds: How long it took
            **kwargs: Additional context (e.g., items_processed, rate)
        """
        self.metrics.setdefault(operation, []).append(duration_seconds)

        extra = {
            'extra_fields': {
                'operation': operation,
                'duration_seconds': duration_seconds,
                **kwargs
            }
        }

        self.logger.info(
            f"{operation} completed in {duration_seconds:.2f}s",
            extra=extra
        )

    def log_throughput(self, operation: str, items: int, duration_seconds: float):
        """Log timing together with the number of items handled per second."""
        rate = items / duration_seconds if duration_seconds > 0 else 0
        self.log_operation_time(
            operation,
            duration_seconds,
            items_processed=items,
            items_per_second=rate
        )

    def get_summary(self) -> Dict[str, Any]:
        """Get summary statistics for all tracked operations."""
        summary = {}
        for operation, durations in self.metrics.items():
            summary[operation] = {
                'count': len(durations),
                'total_seconds': sum(durations),
                'mean_seconds': float(np.mean(durations)),
                'median_seconds': float(np.median(durations)),
                'min_seconds': min(durations),
                'max_seconds': max(durations)
            }

        return summary


def setup_logging(
    verbose: bool = False,
    log_file: Optional[Path] = None,
    enable_json: bool = False,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5
) -> logging.Logger:
    """
    Configure logging for the command-line tools.

    Args:
        verbose: Log DEBUG messages instead of INFO
        log_file: Optional file to log to, rotated at `max_bytes`
        enable_json: Use JSON formatting for structured logs
        max_bytes: Maximum size of each log file before rotation
        backup_count: Number of backup log files to keep

    Returns:
        Configured root logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    root_logger.handlers.clear()

    if enable_json:
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    # Messages go to stderr so that results may be piped from stdout
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


class LogContext:
    """Context manager for adding contextual information to logs."""

    def __init__(self, logger: logging.Logger, **context):
        """
        Initialize log context.

        Args:
            logger: Logger to add context to
            **context: Key-value pairs to add to all log messages
        """
        self.logger = logger
        self.context = context
        self.old_factory = None

    def __enter__(self):
        """Enter context and modify log record factory."""
        old_factory = logging.getLogRecordFactory()

        def record_factory(*args, **kwargs):
            record = old_factory(*args, **kwargs)
            if not hasattr(record, 'extra_fields'):
                record.extra_fields = {}
            record.extra_fields.update(self.context)
            return record

        logging.setLogRecordFactory(record_factory)
        self.old_factory = old_factory
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context and restore original factory."""
        if self.old_factory:
            logging.setLogRecordFactory(self.old_factory)
        return False
