"""
Structured JSON logging with correlation IDs.

One JSON object per line: timestamp, level, correlation_id, module, message,
plus the scheduling fields below when a log call passes them via `extra`.
HTTP requests take their correlation ID from middleware; every rollover
worker tick binds a fresh one, so all lines of one tick (across businesses
rolled over concurrently) can be grouped.
"""
import json
import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

EXTRA_FIELDS = ("business_id", "provider_id", "date", "worker", "error_code")

NOISY_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "aiosqlite")


def get_correlation_id() -> Optional[str]:
    return correlation_id_ctx.get()


def set_correlation_id(cid: str) -> None:
    correlation_id_ctx.set(cid)


def generate_correlation_id() -> str:
    """UUID4 hex, 32 chars."""
    return uuid.uuid4().hex


@contextmanager
def correlation_scope(cid: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation ID for the duration of a block (e.g. one worker tick)."""
    token = correlation_id_ctx.set(cid or generate_correlation_id())
    try:
        yield correlation_id_ctx.get()
    finally:
        correlation_id_ctx.reset(token)


def log_extra(**fields: Any) -> dict[str, str]:
    """
    Build an `extra=` mapping for a log call: drops None values and
    stringifies the rest (UUIDs, dates) so the JSON stays flat.

        logger.info("...", extra=log_extra(business_id=business.id, date=today))
    """
    return {key: str(value) for key, value in fields.items() if value is not None}


class StructuredJsonFormatter(logging.Formatter):
    """
    {"timestamp": "...", "level": "INFO", "correlation_id": "...",
     "module": "src.services.rollover", "message": "...", "business_id": "...", "date": "2025-01-16"}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ"),
            "level": record.levelname,
            "correlation_id": get_correlation_id(),
            "module": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key)) for key in EXTRA_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def configure_structured_logging(log_level: str = "INFO") -> None:
    """
    Route every logger through one stdout handler emitting JSON.
    Called once by the app factory before anything logs.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
