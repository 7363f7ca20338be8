"""Structured JSON logging

Every line carries the service name, environment and, when one is bound, the
correlation id of the request or sweep that produced it. Reminder sweep
output is also written to its own file so the scheduler can be followed
without the HTTP noise.
"""
import json
import logging
import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Iterator, Optional

from ..config.settings import settings

SERVICE_NAME = "printops"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Loggers whose output also goes to reminders.log
SWEEP_LOGGERS = ("printops.scheduler", "printops.services.reminder_service")

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Domain keys lifted from `extra` into the JSON line
EXTRA_FIELDS = (
    "project_id", "reminder_id", "lineage_id", "actor_email", "action",
    "status", "from_status", "to_status", "error_code",
)


class JsonFormatter(logging.Formatter):
    """One JSON object per record"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "env": settings.environment,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None) or correlation_id_var.get()
        if correlation_id:
            entry["correlation_id"] = correlation_id

        entry.update(
            (key, getattr(record, key)) for key in EXTRA_FIELDS if hasattr(record, key)
        )

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _rotating_handler(
    logs_path: str,
    filename: str,
    formatter: logging.Formatter,
    level: int = logging.NOTSET
) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        os.path.join(logs_path, filename),
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """Configure the root logger: stdout, app.log, error.log and reminders.log"""
    logs_path = settings.logs_path
    os.makedirs(logs_path, exist_ok=True)

    formatter = JsonFormatter()
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root_logger.addHandler(console)
    root_logger.addHandler(_rotating_handler(logs_path, "app.log", formatter))
    root_logger.addHandler(_rotating_handler(logs_path, "error.log", formatter, logging.ERROR))

    sweep_handler = _rotating_handler(logs_path, "reminders.log", formatter)
    for name in SWEEP_LOGGERS:
        sweep_logger = logging.getLogger(name)
        sweep_logger.handlers = [sweep_handler]

    # Third-party loggers stay quiet unless something is wrong
    for name in ("uvicorn.access", "apscheduler", "pymongo"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str) -> Iterator[str]:
    """Bind a correlation id for the duration of a block, restoring the previous one after"""
    token = correlation_id_var.set(correlation_id)
    try:
        yield correlation_id
    finally:
        correlation_id_var.reset(token)
