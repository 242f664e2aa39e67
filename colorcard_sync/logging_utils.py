"""
Logging helpers for the sync engine.

Engine modules log through ``logging.getLogger(__name__)``, so every
record lands under the ``colorcard_sync`` logger. Hosts that ship logs to
a collector call configure_structured_logging() to get one JSON object
per line, carrying whichever sync context fields the record was logged
with.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from enum import Enum
from typing import IO, Any

ROOT_LOGGER_NAME = "colorcard_sync"

# Context the engine passes through ``extra``
SYNC_CONTEXT_FIELDS = ("collection", "state", "record_id", "pending_count", "error_kind")


class SyncJsonFormatter(logging.Formatter):
    """Single-line JSON formatter for engine logs.

    Fields: ``timestamp`` (UTC creation time of the record), ``level``,
    ``logger``, ``message``, ``exception`` when one is attached, and any
    of SYNC_CONTEXT_FIELDS present on the record. Enum values are written
    as their value.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for name in SYNC_CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value.value if isinstance(value, Enum) else value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def configure_structured_logging(
    level: int = logging.INFO,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """Route engine logs to stream (default: stdout) as JSON lines.

    Replaces any handlers previously installed on the engine's logger.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(SyncJsonFormatter())

    logger.addHandler(handler)
    logger.setLevel(level)
    return logger


class SyncLoggerAdapter(logging.LoggerAdapter):
    """Adds the coordinator's fixed context (its collection) to every record.

    Per-call ``extra`` values are kept; the fixed context wins on clashes.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**(kwargs.get("extra") or {}), **(self.extra or {})}
        return msg, kwargs
