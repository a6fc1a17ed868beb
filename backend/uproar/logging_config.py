"""
Logging configuration.

Plain `logging` everywhere; `LOG_JSON=true` switches the root handler to
one JSON object per line, including the structured `context` that
SystemLogger attaches to audit records.
"""

import json
import logging
from datetime import datetime, timezone

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """Render a log record as a single JSON line."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "service": self.service_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if context:
            payload["context"] = context
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(settings) -> None:
    """Configure the root logger from settings. Safe to call more than once."""
    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL.upper())

    handler = logging.StreamHandler()
    if settings.LOG_JSON:
        handler.setFormatter(JsonFormatter(settings.APP_NAME))
    else:
        handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))

    root.handlers = [handler]
