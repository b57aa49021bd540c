"""
Structured logging configuration and utilities
"""

import logging
import json
import traceback
from datetime import datetime
from typing import Optional

from exception_helper.config import ExceptionHelperConfig, get_config


PACKAGE_LOGGER_NAME = "exception_helper"

# Attributes every LogRecord carries; anything else came in through `extra=`
_RECORD_ATTRIBUTES = frozenset({
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime'
})


class StructuredFormatter(logging.Formatter):
    """
    Custom formatter that outputs structured JSON logs
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON"""

        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": traceback.format_exception(*record.exc_info)
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRIBUTES
        }

        if extra_fields:
            log_data["extra"] = extra_fields

        return json.dumps(log_data, ensure_ascii=False, default=str)


_handler: Optional[logging.Handler] = None


def setup_logging(config: Optional[ExceptionHelperConfig] = None) -> logging.Logger:
    """
    Set up logging for the exception_helper package

    Only the package logger is configured; the host application's root
    logger is left alone.

    Args:
        config: Configuration to use, defaults to the global configuration

    Returns:
        logging.Logger: Configured package logger
    """
    global _handler
    config = config or get_config()

    package_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.setLevel(getattr(logging, config.logging.level, logging.INFO))

    if _handler is not None:
        package_logger.removeHandler(_handler)

    _handler = logging.StreamHandler()
    if config.logging.structured:
        _handler.setFormatter(StructuredFormatter())
    else:
        _handler.setFormatter(logging.Formatter(config.logging.format))
    package_logger.addHandler(_handler)

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name

    Args:
        name: Logger name (typically __name__)

    Returns:
        logging.Logger: Logger instance
    """
    return logging.getLogger(name)
