"""
Structured Logging Configuration Module

JSON-formatted structured logging for command processing. Logs go to stderr so
that stdout stays reserved for the account snapshot.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional, TextIO

LOGGER_NAME = "payment_engine"
TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.module if hasattr(record, 'module') else record.name,
            "message": record.getMessage(),
            "action": getattr(record, 'action', None),
            "client": getattr(record, 'client', None),
            "tx": getattr(record, 'tx', None),
            "reason": getattr(record, 'reason', None),
            "extra": getattr(record, 'extra', None)
        }

        # Remove None values
        log_entry = {k: v for k, v in log_entry.items() if v is not None}

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json",
                  logger_name: str = LOGGER_NAME,
                  stream: Optional[TextIO] = None) -> logging.Logger:
    """
    Setup logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        fmt: "json" for structured records, "text" for human-readable lines
        logger_name: Name of the logger
        stream: Destination stream (defaults to stderr)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Prevent propagation to avoid duplicate logs
    logger.propagate = False

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               action: Optional[str] = None, client: Optional[int] = None,
               tx: Optional[int] = None, reason: Optional[str] = None,
               extra: Optional[dict] = None):
    """
    Log an action with structured data.

    Args:
        logger: Logger instance
        level: Log level (info, warning, error, etc.)
        message: Log message
        action: Command type being processed
        client: Client id the command refers to
        tx: Transaction id the command refers to
        reason: Rejection reason (error class name)
        extra: Additional structured data
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    fields = {}
    if action is not None:
        fields['action'] = action
    if client is not None:
        fields['client'] = client
    if tx is not None:
        fields['tx'] = tx
    if reason is not None:
        fields['reason'] = reason
    if extra:
        fields['extra'] = extra

    logger.log(levelno, message, extra=fields)
