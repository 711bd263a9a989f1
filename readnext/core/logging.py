"""
Structured logging configuration.

Production emits one JSON object per line; everywhere else gets a compact,
coloured line format. Both carry the current request ID and any
`extra={"extra_fields": {...}}` context passed by the caller.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from readnext.core.config import get_settings

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Third-party loggers that are chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpx", "httpcore")


class JSONFormatter(logging.Formatter):
    """Format log records as JSON for log aggregation."""

    def __init__(self, service: str):
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": self.service,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.levelno >= logging.ERROR:
            log_data["location"] = f"{record.pathname}:{record.lineno}"

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            log_data.update(extra_fields)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_color: bool = True):
        super().__init__()
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        if self.use_color:
            level = f"{self.COLORS.get(record.levelname, '')}{level}{self.RESET}"

        request_id = request_id_var.get()
        request_tag = f"[{request_id[:8]}] " if request_id else ""

        line = (
            f"{self.formatTime(record, '%H:%M:%S')} {level} "
            f"{request_tag}{record.name}: {record.getMessage()}"
        )

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            line += " | " + " ".join(f"{key}={value}" for key, value in extra_fields.items())

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


def setup_logging() -> None:
    """Configure the root logger from settings."""
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)

    log_format = settings.LOG_FORMAT or ("json" if settings.ENVIRONMENT == "production" else "text")
    if log_format == "json":
        handler.setFormatter(JSONFormatter(service=settings.APP_NAME))
    else:
        handler.setFormatter(DevelopmentFormatter(use_color=sys.stdout.isatty()))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root_logger.handlers = [handler]

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
