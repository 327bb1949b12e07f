"""Structured logging for the catalog API.

Call ``configure_logging()`` once at startup. Modules log with
``logging.getLogger(__name__)`` and pass context through ``extra=``; the
formatter appends those fields to the line (or to the JSON object).
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

# attributes every LogRecord has; anything else came in through extra=
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED}


class StructuredFormatter(logging.Formatter):
    """Formats records as ``ts level logger message key=value ...``, or JSON."""

    def __init__(self, as_json: bool = False):
        super().__init__()
        self.as_json = as_json

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        fields = _extra_fields(record)

        if self.as_json:
            payload: dict[str, Any] = {
                "timestamp": ts,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
                **fields,
            }
            if record.exc_info:
                payload["exception"] = self.formatException(record.exc_info)
            return json.dumps(payload, default=str)

        line = f"{ts} {record.levelname:<7} {record.name} {record.getMessage()}"
        if fields:
            line += " " + " ".join(f"{k}={v}" for k, v in fields.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(level: str = "INFO", as_json: bool = False) -> None:
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_catalog_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter(as_json=as_json))
    handler._catalog_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper())
