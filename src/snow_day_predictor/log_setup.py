"""Structured console logging for the snow day CLI and pipeline."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from .redaction import sanitize_for_logging, sanitize_text

LOGGER_NAME = "snow_day_predictor"

# Record attributes passed via ``extra=`` that are worth keeping in the line.
CONTEXT_FIELDS = ("session_id", "location", "model", "provider", "outcome")


class SessionContextFilter(logging.Filter):
    """Stamp every record with the CLI session so log lines join the journal."""

    def __init__(self, session_id: str) -> None:
        super().__init__()
        self.session_id = session_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = self.session_id
        return True


class JsonConsoleFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, Any] = {
            "ts": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": sanitize_text(record.getMessage()),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                event[field] = sanitize_for_logging(value)
        if record.exc_info:
            event["exception"] = sanitize_text(self.formatException(record.exc_info))
        return json.dumps(event, default=str)


def setup_logger(
    name: str = LOGGER_NAME,
    level: int = logging.INFO,
    session_id: str | None = None,
) -> logging.Logger:
    """Configure the package logger once.

    Component loggers (``snow_day_predictor.engine.scorer`` etc.) propagate to
    this one, so configuring it covers the whole package. Calling it again only
    updates the level and session stamp.
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonConsoleFormatter())
        logger.addHandler(handler)

    for handler in logger.handlers:
        for existing in [f for f in handler.filters if isinstance(f, SessionContextFilter)]:
            handler.removeFilter(existing)
        if session_id is not None:
            handler.addFilter(SessionContextFilter(session_id))
    return logger
