"""Logging setup for the service.

Records go to stderr either as one JSON object per line or as plain text.
Context passed through ``extra={"context": {...}}`` is merged into the JSON
object.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone


LOGGER_NAME = "talkgame"


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        context = getattr(record, "context", None)
        if isinstance(context, dict):
            log_data.update(context)
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        try:
            return json.dumps(log_data, default=str)
        except (TypeError, ValueError):
            return json.dumps({"level": "error", "event": "logger.serialize.failed"})


class TextFormatter(logging.Formatter):
    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = getattr(record, "context", None)
        if isinstance(context, dict) and context:
            line += " " + " ".join(f"{k}={v}" for k, v in context.items())
        return line


def configure_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    # Re-running the app factory (tests) must not stack handlers.
    for handler in list(logger.handlers):
        if getattr(handler, "_talkgame", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else TextFormatter())
    handler._talkgame = True
    logger.addHandler(handler)
    return logger
