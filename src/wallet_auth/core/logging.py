"""Logging configuration with request id propagation."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any
from uuid import uuid4

from wallet_auth.core.settings import settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


def get_request_id() -> str | None:
    """Return the request id bound to the current context, if any."""
    return request_id_ctx.get()


def set_request_id(request_id: str | None = None) -> str:
    """Bind a request id to the current context, generating one if needed."""
    value = request_id or str(uuid4())
    request_id_ctx.set(value)
    return value


class RequestIdFilter(logging.Filter):
    """Stamp the current request id onto every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_ctx.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """Render log records as single-line JSON documents."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def configure_logging(level: str | None = None, *, json_output: bool | None = None) -> None:
    """Install a stream handler on the package logger.

    Safe to call more than once; the handler is replaced rather than stacked.
    """
    package_logger = logging.getLogger("wallet_auth")
    package_logger.setLevel(level or settings.log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    use_json = settings.log_json if json_output is None else json_output
    handler.setFormatter(JSONFormatter() if use_json else logging.Formatter(_PLAIN_FORMAT))

    for existing in list(package_logger.handlers):
        package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.propagate = False
