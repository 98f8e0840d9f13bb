"""
Structured logging system for Gityap.

Provides centralized logging with console and file outputs, plus
counters for upstream calls, degraded enrichment and outcome writes.
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Optional
from datetime import datetime
import json


class StructuredLogger:
    """
    Centralized logger with support for console and file outputs.
    Tracks metrics for upstream health and persistence writes.
    """

    def __init__(
        self,
        name: str = "gityap",
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
        self.logger.propagate = False

        self._metrics_lock = threading.Lock()
        self.metrics = {
            "api_calls": 0,
            "errors_by_type": {},
            "enrichment_failures": {},
            "outcomes": {"recorded": 0, "failed": 0},
        }

        if enable_console:
            # stderr keeps the CLI's JSON output on stdout clean
            console_handler = logging.StreamHandler(sys.stderr)
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

            log_file = log_dir / f"gityap_{datetime.now().strftime('%Y%m%d')}.log"
            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)  # Always log everything to file
            file_formatter = logging.Formatter(
                fmt='%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            file_handler.setFormatter(file_formatter)
            self.logger.addHandler(file_handler)

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

    def record_api_call(self):
        """Increment upstream call counter."""
        with self._metrics_lock:
            self.metrics["api_calls"] += 1

    def record_upstream_error(self, error_type: str):
        """Record an upstream failure by type (e.g. RateLimited, HTTP_502)."""
        with self._metrics_lock:
            errors = self.metrics["errors_by_type"]
            errors[error_type] = errors.get(error_type, 0) + 1

    def record_enrichment_failure(self, tier: str):
        """Record a degraded commit-count tier."""
        with self._metrics_lock:
            failures = self.metrics["enrichment_failures"]
            failures[tier] = failures.get(tier, 0) + 1

    def record_outcome_write(self, success: bool):
        """Record whether persisting an outcome succeeded."""
        key = "recorded" if success else "failed"
        with self._metrics_lock:
            self.metrics["outcomes"][key] += 1

    def get_metrics(self) -> dict:
        """Return a snapshot of current metrics."""
        with self._metrics_lock:
            return {
                "api_calls": self.metrics["api_calls"],
                "errors_by_type": dict(self.metrics["errors_by_type"]),
                "enrichment_failures": dict(self.metrics["enrichment_failures"]),
                "outcomes": dict(self.metrics["outcomes"]),
            }

    def log_metrics_summary(self):
        """Log a summary of current metrics."""
        metrics = self.get_metrics()

        self.info("=== Session Metrics ===")
        self.info(f"API Calls: {metrics['api_calls']}")
        outcomes = metrics["outcomes"]
        self.info(f"Outcomes: {outcomes['recorded']} recorded, {outcomes['failed']} failed")

        if metrics["enrichment_failures"]:
            self.info("Degraded enrichment:")
            for tier, count in metrics["enrichment_failures"].items():
                self.info(f"  {tier}: {count}")

        if metrics["errors_by_type"]:
            self.info("Error Types:")
            for error_type, count in metrics["errors_by_type"].items():
                self.info(f"  {error_type}: {count}")


# Global logger instance
_global_logger: Optional[StructuredLogger] = None


def get_logger(
    name: str = "gityap",
    level: str = "INFO",
    **kwargs
) -> StructuredLogger:
    """
    Get or create the global logger instance.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        **kwargs: Additional arguments passed to StructuredLogger

    Returns:
        StructuredLogger instance
    """
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger(name=name, level=level, **kwargs)

    return _global_logger


def reset_logger():
    """Reset the global logger (useful for testing)."""
    global _global_logger
    _global_logger = None
