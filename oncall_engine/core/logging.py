# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Structured JSON logging for the resolver.

Each record becomes one JSON line. Resolution context passed through
``extra=`` (schedule, rotation, override, zone, instant) is lifted into
top-level keys so log pipelines can filter on it.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from oncall_engine.core.config import settings

CONTEXT_FIELDS: tuple[str, ...] = (
    "request_id",
    "schedule_id",
    "rotation_id",
    "override_id",
    "user_id",
    "timezone",
    "at",
    "source",
    "duration_ms",
)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with resolution context promoted."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": settings.SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value.isoformat() if isinstance(value, datetime) else value
        if record.exc_info and record.exc_info[1]:
            entry["error"] = str(record.exc_info[1])
            entry["error_type"] = type(record.exc_info[1]).__name__
        return json.dumps(entry, default=str)


def get_logger(name: str | None = None) -> logging.Logger:
    """Logger writing JSON lines to stdout; handlers attach once per name."""
    logger = logging.getLogger(name or settings.SERVICE_NAME)
    if not logger.handlers:
        logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        logger.propagate = False
    return logger
