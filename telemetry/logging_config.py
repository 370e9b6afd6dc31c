"""Structured logging configuration.

JSON log lines for production, key=value text lines for development.
Both formats carry the request correlation ID when one is set.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

# Correlation ID for the request (or MQTT message) being processed
correlation_id_ctx: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler.executors")


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return getattr(record, "extra_fields", None) or {}


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON documents.

    Keys: timestamp, level, service, logger, message, optional
    correlation_id, any structured extra fields, and exception/location
    details for errors.
    """

    def __init__(self, service_name: str = "telemetry-alerts"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_ctx.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        log_data.update(_extra_fields(record))

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.levelno >= logging.ERROR:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for local development.

    Format: timestamp - service - level - [correlation_id] - message key=value ...
    """

    def __init__(self, service_name: str = "telemetry-alerts"):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        correlation_id = correlation_id_ctx.get() or "-"

        line = (
            f"{timestamp} - {self.service_name} - {record.levelname} - "
            f"[{correlation_id}] - {record.getMessage()}"
        )

        fields = _extra_fields(record)
        if fields:
            line += " " + " ".join(f"{key}={value}" for key, value in fields.items())

        if record.exc_info:
            line += f"\n{self.formatException(record.exc_info)}"

        return line


def setup_logging(
    log_format: str = "json",
    log_level: str = "INFO",
    service_name: str = "telemetry-alerts",
) -> None:
    """Configure root logging for the service.

    Args:
        log_format: 'json' for structured logging, 'text' for human-readable
        log_level: Logging level name (DEBUG, INFO, WARNING, ...)
        service_name: Service name stamped on every line
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if log_format.lower() == "json":
        handler.setFormatter(JsonFormatter(service_name=service_name))
    else:
        handler.setFormatter(TextFormatter(service_name=service_name))
    root_logger.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class StructuredLogger:
    """Logger wrapper that takes structured fields as keyword arguments."""

    def __init__(self, name: str):
        self._logger = logging.getLogger(name)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, fields: dict[str, Any]) -> None:
        extra = {"extra_fields": fields} if fields else {}
        self._logger.log(level, msg, extra=extra)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)

    def exception(self, msg: str, **fields: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        extra = {"extra_fields": fields} if fields else {}
        self._logger.exception(msg, extra=extra)


def get_logger(name: str) -> StructuredLogger:
    """Return a structured logger (typically called with __name__)."""
    return StructuredLogger(name)
