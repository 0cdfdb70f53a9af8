# ==============================================================================
# LOGGING CONFIGURATION - Root Handler Setup
# ==============================================================================
# Text or JSON log lines, with the current request id attached
# ==============================================================================

from __future__ import annotations

import contextvars
import json
import logging
import sys
import time
from typing import Any, Optional

from aiserve.core.settings import settings

# Request-scoped correlation id, set by RequestLoggerMiddleware
_request_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "request_id", default=""
)


def set_request_id(request_id: str) -> contextvars.Token[str]:
    """Set request ID for current context."""
    return _request_id.set(request_id)


def reset_request_id(token: contextvars.Token[str]) -> None:
    """Restore the previous request ID."""
    _request_id.reset(token)


def get_request_id() -> str:
    """Get request ID from context."""
    return _request_id.get()


class RequestIdFilter(logging.Filter):
    """Attach the context request id to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Fields: timestamp, level, logger, message, request_id (when set)
    and exception text (when present).
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": time.time(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", "-")
        if request_id and request_id != "-":
            entry["request_id"] = request_id

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry)


TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"


def configure_logging(
    level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> None:
    """
    Install the application's root log handler.

    Replaces existing root handlers so repeated calls (app reloads,
    tests) do not duplicate output.

    Args:
        level: Log level name (defaults to settings.LOG_LEVEL)
        log_format: "json" or "text" (defaults to settings.LOG_FORMAT)
    """
    level = (level or settings.LOG_LEVEL).upper()
    log_format = log_format or settings.LOG_FORMAT

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    if log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
