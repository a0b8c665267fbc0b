"""
Structured JSON logging for the intervention engine.
Includes student_id, action, and timestamp in every workflow log.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone

from src.shared.config import settings

_RESERVED_ATTRS = {
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "asctime",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # student_id, action, intervention_id and any other extra fields
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(
    log_level: Optional[str] = None,
    log_file: Optional[Path] = None
):
    """
    Setup structured logging for the engine.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file path for file logging
    """
    log_level = log_level or settings.log_level
    log_file = log_file or settings.log_file

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = StructuredFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    student_id: Optional[str] = None,
    action: Optional[str] = None,
    intervention_id: Optional[str] = None,
    **kwargs
):
    """
    Log with structured context.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        message: Log message
        student_id: Optional student ID
        action: Optional action name (e.g. "checkin_failed")
        intervention_id: Optional intervention ID
        **kwargs: Additional structured fields
    """
    extra = {}
    if student_id:
        extra["student_id"] = student_id
    if action:
        extra["action"] = action
    if intervention_id:
        extra["intervention_id"] = intervention_id
    extra.update(kwargs)

    logger.log(level, message, extra=extra)


# Initialize logging on import
setup_logging()
