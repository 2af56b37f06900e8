# PATH: core/logging.py
"""
Structured logging for ARBSCAN.

All contextual fields are passed only via extra={"context": {...}}.
Process-wide fields (e.g. the run id of a scan loop) go through
set_global_context() and are merged into every JSON record.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_global_context: Dict[str, Any] = {}


def set_global_context(**kwargs: Any) -> None:
    """Set fields added to every structured log record."""
    _global_context.update(kwargs)


def clear_global_context() -> None:
    """Drop all global context fields."""
    _global_context.clear()


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Output:
        {"timestamp": ..., "level": ..., "logger": ..., "message": ...,
         "context": {...}, "exception": ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(_global_context)
        if hasattr(record, "context") and record.context:
            context.update(record.context)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    MAX_CONTEXT_FIELDS = 4

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} | {record.levelname:<9} | {record.name} | {record.getMessage()}"

        if hasattr(record, "context") and record.context:
            items = list(record.context.items())
            ctx_str = ", ".join(f"{k}={v}" for k, v in items[: self.MAX_CONTEXT_FIELDS])
            if len(items) > self.MAX_CONTEXT_FIELDS:
                ctx_str += f", ... (+{len(items) - self.MAX_CONTEXT_FIELDS} more)"
            base += f" | {ctx_str}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Logging level
        log_file: Optional file path for log output (always JSON)
        json_format: Use JSON format (True) or console format (False) on stdout
    """
    handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        StructuredFormatter() if json_format else ConsoleFormatter()
    )
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,
    )

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def shutdown_logging() -> None:
    """Close and detach all root handlers."""
    for handler in logging.root.handlers[:]:
        handler.close()
        logging.root.removeHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically named after the module)."""
    return logging.getLogger(name)
