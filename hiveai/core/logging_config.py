"""Logging setup for the command line and embedding applications."""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional, Union

_PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class StructuredFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        agent = getattr(record, "agent", None)
        if agent is not None:
            entry["agent"] = agent
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    json_format: bool = False,
    logger_name: str = "hiveai",
) -> logging.Logger:
    """Attach console (and optionally file) handlers to the ``hiveai`` logger.

    Calling it again replaces the handlers installed by the previous call.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.handlers = []

    formatter: logging.Formatter = StructuredFormatter() if json_format else logging.Formatter(_PLAIN_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
