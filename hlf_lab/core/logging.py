"""
Structured logging configuration.
Every event is emitted as a single JSON line carrying timestamp, level,
message, environment and any contextual fields passed by the caller.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

# debug < info < warn < error
LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

_LEVEL_NAMES = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}

_RESERVED = frozenset(
    [
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename",
        "module", "exc_info", "exc_text", "stack_info", "lineno", "funcName",
        "created", "msecs", "relativeCreated", "thread", "threadName",
        "processName", "process", "message", "taskName", "asctime",
    ]
)


class StructuredLogger:
    """Structured logger with consistent formatting and levels."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, extra=kwargs)

    def info(self, message: str, **kwargs):
        self.logger.info(message, extra=kwargs)

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, extra=kwargs)

    def error(self, message: str, exc: Optional[BaseException] = None, **kwargs):
        """Log error message; pass ``exc`` to attach the traceback."""
        if exc:
            self.logger.error(message, exc_info=exc, extra=kwargs)
        else:
            self.logger.error(message, extra=kwargs)


class StructuredFormatter(logging.Formatter):
    """Render a log record as one JSON object per line."""

    def __init__(self, environment: str = "development"):
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname.lower()),
            "message": record.getMessage(),
            "environment": self.environment,
            "logger": record.name,
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["stack"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def resolve_level(level: str) -> int:
    return LEVELS.get((level or "").strip().lower(), logging.INFO)


def configure_logging(level: str = "info", environment: str = "development") -> None:
    """
    Configure application-wide logging.

    Args:
        level: Minimum level name (debug, info, warn, error)
        environment: Environment label stamped on every line
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    numeric_level = resolve_level(level)
    root_logger.setLevel(numeric_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(StructuredFormatter(environment=environment))
    root_logger.addHandler(console_handler)

    # Set levels for noisy libraries
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance for the given name."""
    return StructuredLogger(name)


app_logger = get_logger("hlf_lab")
db_logger = get_logger("hlf_lab.db")
api_logger = get_logger("hlf_lab.api")


def init_app_logging(settings) -> None:
    """Initialize application logging based on settings."""
    configure_logging(level=settings.LOG_LEVEL, environment=settings.ENVIRONMENT)
    app_logger.debug("Application logging initialized", log_level=settings.LOG_LEVEL)
