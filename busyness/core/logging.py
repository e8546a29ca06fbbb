"""Busyness — Structured JSON Logging.

One JSON object per line on stdout. Fetch cycles tag their lines with
``library`` and ``generation`` so interleaved concurrent cycles can be told
apart; the HTTP client adds ``endpoint``, ``status_code`` and ``duration_ms``.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from busyness.config import settings

CYCLE_FIELDS = ("library", "generation")
REQUEST_FIELDS = ("endpoint", "status_code", "duration_ms")


class JSONFormatter(logging.Formatter):
    """Produces structured JSON log lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            # When the event happened, not when it was formatted
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CYCLE_FIELDS + REQUEST_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_entry["stack"] = self.formatStack(record.stack_info)
        # Enums, datetimes and URLs end up as their str()
        return json.dumps(log_entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Return ``busyness.<name>`` with the JSON handler attached once."""
    logger = logging.getLogger(f"busyness.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
        # Handled here; the root logger would print it a second time
        logger.propagate = False
    logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger
