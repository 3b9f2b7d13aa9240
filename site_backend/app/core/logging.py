"""JSON log lines for the site backend, with OAuth secrets scrubbed from structured data."""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

# Record attributes copied into the JSON line when a call site passes them via ``extra``.
CONTEXT_FIELDS = ("request_id", "path")

# Keys whose values never reach a log line, at any depth of ``extra={"data": ...}``.
SENSITIVE_KEYS = frozenset(
    {"access_token", "refresh_token", "client_secret", "session_secret", "authorization", "cookie"}
)
REDACTED = "[REDACTED]"

# Client libraries that print full request URLs (and with them OAuth codes) at DEBUG.
QUIET_LOGGERS = ("urllib3", "requests", "httpcore", "httpx")


def redact(value: Any) -> Any:
    """Copy ``value`` with every sensitive mapping key masked."""
    if isinstance(value, dict):
        return {
            key: REDACTED if str(key).lower() in SENSITIVE_KEYS else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    return value


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                line[field] = getattr(record, field)
        if hasattr(record, "data"):
            line["data"] = redact(record.data)  # type: ignore[attr-defined]
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


def setup_logging(level: int = LOG_LEVEL) -> logging.Logger:
    """Route the root logger to stdout as JSON, replacing any handlers uvicorn installed."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    logging.getLogger("uvicorn.access").disabled = True
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root
