"""Structured logging for the MedGuard API.

Log lines are JSON in production and ``key=value`` text in development.
Every line carries the request's correlation id when one is set, and
free-text fields a patient typed in (notes, skip reasons) are masked so
they never reach the log sink.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

# Set per request by CorrelationIdMiddleware
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

REDACTED_FIELDS = frozenset({"notes", "skip_reason", "instructions", "purpose"})
REDACTED_VALUE = "[redacted]"

# Libraries whose INFO output drowns out dose events
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite")


def redact_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``fields`` with patient free text masked."""
    return {
        key: REDACTED_VALUE if key in REDACTED_FIELDS and value is not None else value
        for key, value in fields.items()
    }


class _ServiceFormatter(logging.Formatter):
    def __init__(self, service_name: str = "medguard-api"):
        super().__init__()
        self.service_name = service_name

    @staticmethod
    def record_time(record: logging.LogRecord) -> datetime:
        return datetime.fromtimestamp(record.created, tz=timezone.utc)

    @staticmethod
    def record_fields(record: logging.LogRecord) -> dict[str, Any]:
        return redact_fields(getattr(record, "extra_fields", None) or {})


class JsonFormatter(_ServiceFormatter):
    """One JSON object per line.

    Keys: ``timestamp``, ``level``, ``service``, ``logger``, ``message``,
    ``correlation_id`` (inside a request), any structured fields passed to
    :class:`StructuredLogger`, ``exception`` when a traceback is attached,
    and ``location`` for ERROR and above.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.record_time(record).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            payload["correlation_id"] = correlation_id

        payload.update(self.record_fields(record))

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.levelno >= logging.ERROR:
            payload["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        # Decimal amounts, UUIDs and datetimes fall back to str()
        return json.dumps(payload, default=str)


class TextFormatter(_ServiceFormatter):
    """``time - service - LEVEL - [correlation] - message k=v ...``"""

    def format(self, record: logging.LogRecord) -> str:
        line = " - ".join(
            (
                self.record_time(record).strftime("%Y-%m-%d %H:%M:%S"),
                self.service_name,
                record.levelname,
                f"[{correlation_id_ctx.get() or '-'}]",
                record.getMessage(),
            )
        )

        fields = self.record_fields(record)
        if fields:
            line += " " + " ".join(f"{key}={value}" for key, value in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    service_name: str = "medguard-api",
) -> None:
    """Install a single stdout handler on the root logger.

    Args:
        log_format: ``json`` or ``text``.
        log_level: Standard level name; unknown names fall back to INFO.
        service_name: Value of the ``service`` field on every line.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter_class = JsonFormatter if log_format.lower() == "json" else TextFormatter
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter_class(service_name=service_name))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class StructuredLogger:
    """``logging.Logger`` facade taking structured fields as keyword args.

    ``logger.info("Dose logged", medication_id=str(med.id))`` attaches
    ``medication_id`` to the record for the formatters above.
    """

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    def _log(
        self,
        level: int,
        msg: str,
        fields: dict[str, Any],
        exc_info: bool = False,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {"extra_fields": fields} if fields else None
        # stacklevel points location at the caller, not this wrapper
        self._logger.log(level, msg, exc_info=exc_info, extra=extra, stacklevel=3)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)

    def exception(self, msg: str, **fields: Any) -> None:
        """ERROR with the active exception's traceback attached."""
        self._log(logging.ERROR, msg, fields, exc_info=True)


def get_logger(name: str) -> StructuredLogger:
    """Structured logger for a module; pass ``__name__``."""
    return StructuredLogger(name)
