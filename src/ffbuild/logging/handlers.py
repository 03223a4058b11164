"""JSON log formatting for machine-readable build logs."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries, read from a blank record.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}

PIPELINE_FIELDS = ("stage", "step")
_FILTER_ATTRS = frozenset(PIPELINE_FIELDS) | {"step_tag"}


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Values passed through ``extra=`` on the logging call."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _RECORD_ATTRS
        and key not in _FILTER_ATTRS
        and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Keys: timestamp (UTC ISO-8601), level, message, logger, the pipeline
    stage and step when set, ``context`` for extra fields and
    ``exception`` for tracebacks.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": created.isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        if record.name != "root":
            entry["logger"] = record.name

        entry.update(
            (field, getattr(record, field))
            for field in PIPELINE_FIELDS
            if getattr(record, field, None)
        )

        context = extra_fields(record)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)
