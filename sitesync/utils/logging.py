"""
SiteSync Logging
================

Component loggers for sync runs. Console output is human readable,
log files get one JSON object per line so CI artifacts can be searched.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


# Attributes every LogRecord carries; anything else arrived through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

CONSOLE_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s - %(message)s"

NOISY_LIBRARIES = ("urllib3", "requests", "feedparser")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields nested under "extra"."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
        }
        extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRIBUTES}
        if extra:
            entry["extra"] = extra
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class LoggerAdapter(logging.LoggerAdapter):
    """Adds the component's fixed context to every record."""

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> tuple:
        kwargs["extra"] = {**kwargs.get("extra", {}), **self.extra}
        return msg, kwargs


def get_logger_for_component(
    component_name: str,
    source: Optional[str] = None,
    document: Optional[str] = None,
) -> LoggerAdapter:
    """Logger named ``sitesync.<component_name>``.

    Args:
        component_name: Component name, e.g. 'normalizer' or 'splicer'
        source: Feed or API the component works on
        document: Site document the component writes
    """
    context = {"component": component_name}
    if source:
        context["source"] = source
    if document:
        context["document"] = document
    return LoggerAdapter(logging.getLogger(f"sitesync.{component_name}"), context)


def configure_application_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True,
    structured_logging: bool = False,
    max_file_size: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """Attach handlers to the ``sitesync`` logger, replacing any from a previous call.

    Args:
        log_level: Level name such as "DEBUG" or "WARNING"
        log_file: Rotating JSON log file (optional)
        enable_console: Log to stdout
        structured_logging: Use JSON on stdout as well
        max_file_size: Bytes before the log file rotates
        backup_count: Rotated files kept

    Returns:
        The ``sitesync`` logger
    """
    logger = logging.getLogger("sitesync")
    logger.setLevel(log_level.upper())
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if enable_console:
        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(
            StructuredFormatter() if structured_logging
            else logging.Formatter(CONSOLE_FORMAT, datefmt="%H:%M:%S")
        )
        logger.addHandler(console)

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            path, maxBytes=max_file_size, backupCount=backup_count, encoding="utf-8"
        )
        rotating.setFormatter(StructuredFormatter())
        logger.addHandler(rotating)

    for name in NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return logger


class PerformanceLogger:
    """Times a block and logs how long it took.

    Failures are only noted at debug level; whoever handles the exception
    reports it.
    """

    def __init__(self, logger, operation: str, **context):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.started = None

    def __enter__(self) -> "PerformanceLogger":
        self.started = time.monotonic()
        self.logger.debug(f"Starting {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        duration = time.monotonic() - self.started
        extra = {**self.context, "duration_seconds": round(duration, 3), "success": exc_type is None}
        if exc_type is None:
            self.logger.info(f"Completed {self.operation} in {duration:.3f}s", extra=extra)
        else:
            self.logger.debug(f"Stopped {self.operation} after {duration:.3f}s", extra=extra)
