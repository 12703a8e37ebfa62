"""
JSON logging for the API process.

Every record is one JSON object on stdout. Fields passed with `extra=` are
copied into the object, and the request's correlation id is added when the
request middleware has set one.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from groundcontrol.config import get_settings

SERVICE_NAME = "groundcontrol"

correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_FIELDS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


class JSONLogFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def __init__(self, environment: str | None = None) -> None:
        super().__init__()
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.environment:
            entry["env"] = self.environment

        request_id = correlation_id_var.get()
        if request_id:
            entry["correlation_id"] = request_id

        for key, value in record.__dict__.items():
            if key in _RECORD_FIELDS:
                continue
            entry[key if key not in entry else f"extra_{key}"] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Module logger; output goes through the root handler from `setup_logging`."""
    return logging.getLogger(name)


def setup_logging(level: str | None = None) -> None:
    """Install the JSON handler on the root logger."""
    settings = get_settings()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONLogFormatter(settings.app_env))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel((level or settings.log_level).upper())

    sql_level = logging.INFO if settings.debug else logging.WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(sql_level)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
