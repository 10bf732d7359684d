"""JSON logging with request context.

Two streams share stdout: ``app`` for operational messages and ``audit`` for
the ``crm.audit`` logger. Fields passed via ``extra=`` are emitted as
top-level JSON keys, so audit lines stay machine-readable.
"""

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Optional

from crm.core.context import get_request_id, get_user_id
from crm.core.settings import settings

AUDIT_LOGGER = "crm.audit"

# Attributes every LogRecord carries; anything else came from ``extra=``.
_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime", "user_id", "request_id"}


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.user_id = get_user_id()
        record.request_id = get_request_id()
        return True


class JsonFormatter(logging.Formatter):
    def __init__(self, stream: str = "app") -> None:
        super().__init__()
        self.stream = stream

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "stream": self.stream,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", "-"),
            "user_id": getattr(record, "user_id", "-"),
        }
        payload.update({k: v for k, v in vars(record).items() if k not in _RESERVED})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _handler(formatter: str, level: str) -> dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "level": level,
        "formatter": formatter,
        "filters": ["request_context"],
        "stream": "ext://sys.stdout",
    }


def build_logging_config(level: str) -> dict[str, Any]:
    app_logger = {"handlers": ["app"], "level": level, "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_context": {"()": RequestContextFilter}},
        "formatters": {
            "app": {"()": JsonFormatter, "stream": "app"},
            "audit": {"()": JsonFormatter, "stream": "audit"},
        },
        "handlers": {"app": _handler("app", level), "audit": _handler("audit", level)},
        "loggers": {
            "": app_logger,
            AUDIT_LOGGER: {"handlers": ["audit"], "level": level, "propagate": False},
            **{name: app_logger for name in ("uvicorn", "uvicorn.error", "uvicorn.access")},
        },
    }


def configure_logging(level: Optional[str] = None) -> None:
    logging.config.dictConfig(build_logging_config((level or settings.log_level).upper()))
    logging.getLogger(__name__).info(
        "Logging configured for environment=%s otp_store=%s",
        settings.environment,
        settings.otp_store_backend,
    )


def get_audit_logger() -> logging.Logger:
    return logging.getLogger(AUDIT_LOGGER)
