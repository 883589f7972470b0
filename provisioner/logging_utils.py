"""
logging_utils.py

Responsibility: Emit one JSON object per log line on stderr.

Rules:
- Fields passed through `extra=` (e.g. `event`, `repository`, `branch`) are copied
  into the payload next to timestamp/level/logger/message.
- An unknown level name is a configuration error, reported like any other bad input.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from provisioner.errors import ConfigError

_STANDARD_RECORD_KEYS = set(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


class JsonLogFormatter(logging.Formatter):
    """
    Render a record as a single JSON line, including any `extra=` fields.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_RECORD_KEYS and not key.startswith("_"):
                payload[key] = value

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def resolve_level(level: str) -> int:
    """
    Map a level name (case-insensitive) to its number, raising ConfigError for unknown names.
    """
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ConfigError(f"Unknown log level '{level}'. Allowed values: DEBUG, INFO, WARNING, ERROR, CRITICAL")
    return value


def configure_logging(level: str = "WARNING") -> None:
    numeric = resolve_level(level)

    root = logging.getLogger()
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonLogFormatter())
    root.addHandler(handler)
    root.setLevel(numeric)
