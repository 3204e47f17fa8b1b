"""
Structured Logging Configuration Module

Every loan book change is logged as one record carrying three structured
fields besides the message:

    action     what changed (``record_repayment``, ``close_investor``, ...)
    resource   what it changed (``loan:<id>``, ``investor:<id>``, ``snapshot``)
    details    amounts, dates and ids involved

``JSONFormatter`` writes them as one JSON object per line; the text format
keeps only the message.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Any, Mapping, Optional


TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
STRUCTURED_FIELDS = ("action", "resource", "details")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, structured fields included when set"""

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in STRUCTURED_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", logger_name: str = "lending_book",
                  format_type: str = "json", log_file: Optional[str] = None) -> logging.Logger:
    """
    Setup logging for the loan book.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the logger
        format_type: "json" for JSONFormatter, anything else for plain text
        log_file: Optional file path; logs go to stderr when omitted

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Calling twice must not duplicate output
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()

    handler = logging.FileHandler(log_file) if log_file else logging.StreamHandler()
    if format_type == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    logger.propagate = False

    return logger


def get_logger(name: str = "lending_book") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               action: Optional[str] = None, resource: Optional[str] = None,
               details: Optional[Mapping[str, Any]] = None) -> None:
    """Log a loan book change with its action, resource and details"""
    logger.log(
        getattr(logging, level.upper()),
        message,
        extra={
            "action": action,
            "resource": resource,
            "details": dict(details) if details else None,
        },
    )
