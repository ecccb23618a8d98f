"""Centralized logging configuration for the application."""

import json
import logging
import sys
from datetime import datetime, timezone

from .config import settings

CONSOLE_FORMAT = logging.Formatter(
    fmt='%(asctime)s %(levelname)-8s [%(name)s] %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logger() -> logging.Logger:
    """Configure and return the service logger with console and optional file handlers."""
    logger = logging.getLogger("universe_api")
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    # Prevent duplicate handlers on re-import
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(CONSOLE_FORMAT)
    logger.addHandler(console_handler)

    if settings.LOG_FILE:
        try:
            file_handler = logging.FileHandler(settings.LOG_FILE)
        except OSError as e:
            logger.error(f"Failed to create file handler for {settings.LOG_FILE}: {e}")
        else:
            file_handler.setFormatter(
                JSONFormatter() if settings.LOG_FORMAT == "json" else CONSOLE_FORMAT
            )
            logger.addHandler(file_handler)

    return logger


logger = setup_logger()
