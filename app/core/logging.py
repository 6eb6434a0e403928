"""
Structured logging configuration for the summons drafting service.

Supports both human-readable (development) and JSON (staging/production) formats.
Fields bound through LogContext (summons_id, section_key, ...) are attached
to every record emitted inside the context.
"""

import logging
import json
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional


_RESERVED_ATTRS = (
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "message", "taskName",
)


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter for structured logging.

    Output format compatible with log aggregators (ELK, CloudWatch, etc.)
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.pathname:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Extra fields, including those injected by ContextFilter
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


class ContextFilter(logging.Filter):
    """Copies the active LogContext fields onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in LogContext.current().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


def configure_logging(
    level: str = "INFO",
    format_type: str = "text",
    correlation_id: Optional[str] = None,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: "json" for structured, "text" for human-readable
        correlation_id: Optional correlation ID to include in all logs
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)

    if format_type.lower() == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter())

    handler.addFilter(ContextFilter())
    root_logger.addHandler(handler)

    if correlation_id:
        LogContext.bind(correlation_id=correlation_id)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name, typically __name__

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


class LogContext:
    """
    Context manager for adding fields to log records.

    Fields live in a ContextVar, so concurrent requests and generation
    tasks each see only their own bindings.

    Usage:
        with LogContext(summons_id="abc123", section_key="FEITEN"):
            logger.info("Generating section")  # Will include summons_id and section_key
    """

    _context: ContextVar[Dict[str, Any]] = ContextVar("log_context", default={})

    def __init__(self, **kwargs):
        self._fields = kwargs
        self._token = None

    @classmethod
    def current(cls) -> Dict[str, Any]:
        """Snapshot of the currently bound fields."""
        return dict(cls._context.get())

    @classmethod
    def bind(cls, **fields) -> None:
        """Bind fields for the rest of the current context."""
        cls._context.set({**cls._context.get(), **fields})

    def __enter__(self):
        self._token = LogContext._context.set({**LogContext._context.get(), **self._fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        LogContext._context.reset(self._token)
