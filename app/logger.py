"""Logging setup for the todo service: console always, file output when LOG_FILE is set."""

import json
import logging
import sys
from datetime import datetime, timezone
from .config import settings

LOGGER_NAME = "todo_microservice"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _text_formatter() -> logging.Formatter:
    return logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT)


def _file_handler(path: str) -> logging.Handler:
    handler = logging.FileHandler(path)
    handler.setFormatter(JSONFormatter() if settings.LOG_FORMAT == "json" else _text_formatter())
    return handler


def setup_logger() -> logging.Logger:
    """Return the service logger, attaching handlers on first use only."""
    log = logging.getLogger(LOGGER_NAME)
    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if log.handlers:
        return log

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_text_formatter())
    log.addHandler(console)

    if settings.LOG_FILE:
        try:
            log.addHandler(_file_handler(settings.LOG_FILE))
        except OSError as e:
            log.error(f"Cannot open log file {settings.LOG_FILE}: {e}")

    return log


logger = setup_logger()
