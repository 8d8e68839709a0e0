"""
Logging setup for the exam engine.

Development gets a plain single-line format; production emits one JSON
object per record so the log pipeline can index request ids, session ids
and analytics events.
"""
import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app.core.config import settings

# Set per request by RequestLoggingMiddleware
request_id_context: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Attributes passed through ``extra=`` that are copied into JSON output
STRUCTURED_FIELDS = (
    # HTTP
    "method",
    "path",
    "status_code",
    "duration_ms",
    "client_host",
    "user_identifier",
    # Exam engine
    "user_id",
    "session_id",
    "test_id",
    "error_id",
    "event_data",
)


class JSONFormatter(logging.Formatter):
    """Render a log record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_context.get()
        if request_id:
            entry["request_id"] = request_id

        for field in STRUCTURED_FIELDS:
            if hasattr(record, field):
                entry[field] = getattr(record, field)

        if record.levelno >= logging.ERROR:
            entry["source"] = f"{record.pathname}:{record.lineno}"
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _handler_logger(level: int) -> Dict[str, Any]:
    return {"level": level, "handlers": ["console"], "propagate": False}


def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Level comes from LOG_LEVEL (unknown names fall back to INFO). ENV
    "production" selects the JSON formatter.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    if not isinstance(level, int):
        level = logging.INFO
    formatter = "json" if settings.ENV == "production" else "default"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                },
                "json": {"()": JSONFormatter},
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "level": level,
                    "formatter": formatter,
                    "stream": sys.stdout,
                },
            },
            "root": {"level": level, "handlers": ["console"]},
            "loggers": {
                "app": _handler_logger(level),
                "uvicorn.access": _handler_logger(
                    logging.WARNING if settings.DEBUG else logging.INFO
                ),
                "sqlalchemy.engine": _handler_logger(logging.WARNING),
            },
        }
    )
