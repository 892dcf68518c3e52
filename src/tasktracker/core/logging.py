"""Structured logging for the task tracker service.

Records are rendered as JSON objects. Anything passed through ``extra=``
(routine names, parameter summaries, error codes) becomes a top-level key, and
every record carries the request id bound for the current request.
"""

from __future__ import annotations

import json
import logging
import logging.config
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any

from .config import Settings

REQUEST_ID_HEADER = "X-Request-ID"
NO_REQUEST_ID = "-"

_request_id: ContextVar[str] = ContextVar("tasktracker_request_id", default=NO_REQUEST_ID)

_RESERVED_LOG_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "request_id",
    }
)


def get_request_id() -> str:
    return _request_id.get()


def bind_request_id(request_id: str) -> Token[str]:
    """Bind ``request_id`` to the running request; reset it with the returned token."""
    return _request_id.set(request_id)


def reset_request_id(token: Token[str]) -> None:
    _request_id.reset(token)


class RequestContextFilter(logging.Filter):
    """Attach the current request id to emitted log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


class JsonLogFormatter(logging.Formatter):
    """Render a record, its ``extra`` context and any traceback as one JSON line."""

    def __init__(self, *, defaults: dict[str, Any] | None = None, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)
        self._defaults = defaults or {}

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = dict(self._defaults)
        payload.update(
            {
                "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                "request_id": getattr(record, "request_id", NO_REQUEST_ID),
            }
        )
        for key, value in record.__dict__.items():
            if key in _RESERVED_LOG_RECORD_ATTRS:
                continue
            payload.setdefault(key, _jsonable(value))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = self.formatStack(record.stack_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


def configure_logging(settings: Settings) -> None:
    """Route the root and uvicorn loggers through the JSON handler."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    handler_ref = {"handlers": ["default"], "level": level, "propagate": False}
    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": JsonLogFormatter,
                "defaults": {
                    "service": settings.project_name,
                    "environment": settings.environment,
                },
            }
        },
        "filters": {
            "request_context": {"()": RequestContextFilter},
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "json",
                "level": level,
                "filters": ["request_context"],
            }
        },
        "loggers": {
            "": {"handlers": ["default"], "level": level},
            "uvicorn": dict(handler_ref),
            "uvicorn.error": dict(handler_ref),
            "uvicorn.access": dict(handler_ref),
        },
    }
    logging.config.dictConfig(config)


__all__ = [
    "JsonLogFormatter",
    "NO_REQUEST_ID",
    "REQUEST_ID_HEADER",
    "RequestContextFilter",
    "bind_request_id",
    "configure_logging",
    "get_request_id",
    "reset_request_id",
]
