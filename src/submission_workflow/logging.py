"""JSON logging for workflow operations.

One JSON object per line on stderr. The fields that identify a workflow
operation (``submission_id``, ``operation``, ``sequence``) are top-level keys
so log lines for one submission can be filtered and ordered directly; any
other ``extra=`` fields are grouped under ``"extra"``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}

WORKFLOW_FIELDS: tuple[str, ...] = ("submission_id", "operation", "sequence")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
        }
        fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        for name in WORKFLOW_FIELDS:
            if name in fields:
                payload[name] = fields.pop(name)
        payload["message"] = record.getMessage()
        if fields:
            payload["extra"] = fields
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Send JSON logs at ``level`` to stderr, replacing existing root handlers.

    stdout is left to command output. urllib3 (under requests) is held at
    WARNING unless ``level`` is stricter.
    """

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(level.upper())

    logging.getLogger("urllib3").setLevel(max(root.level, logging.WARNING))
