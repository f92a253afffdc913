"""Structured logging configuration."""

import contextvars
import logging
import sys
import uuid

from pythonjsonlogger.json import JsonFormatter

request_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

# Chatty third-party loggers kept at WARNING unless debugging SQL
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


class RequestIdFilter(logging.Filter):
    """Inject request_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("")  # type: ignore[attr-defined]
        return True


def setup_logging(*, debug: bool = False, json_format: bool = True) -> None:
    """Configure the root logger.

    The API process logs JSON with the request id attached. Maintenance
    scripts pass ``json_format=False`` so operators get readable lines on
    stderr while the report itself goes to stdout.
    """
    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        formatter: logging.Formatter = JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    else:
        formatter = logging.Formatter(_TEXT_FORMAT)
    handler.setFormatter(formatter)
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def generate_request_id() -> str:
    """Generate a new request ID."""
    return uuid.uuid4().hex[:16]
