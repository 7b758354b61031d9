"""Logging setup.

Production writes one JSON object per record to stdout; development writes
plain text and always logs at DEBUG.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TextIO

from .config import Config

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes every LogRecord has; anything else came from ``extra=``.
_RECORD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JSONFormatter(logging.Formatter):
    """Format records as single-line JSON objects.

    Fields passed through ``extra=`` are copied into the object.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(config: Config, stream: TextIO | None = None) -> logging.Logger:
    """Install a handler on the package logger for ``config``.

    Args:
        config: Process configuration.
        stream: Output stream; defaults to stdout.

    Returns:
        The configured ``website`` logger.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    if config.production:
        handler.setFormatter(JSONFormatter())
        level = config.log_level
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
        level = logging.DEBUG

    logger = logging.getLogger("website")
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
