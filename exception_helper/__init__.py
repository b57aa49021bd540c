"""
exception_helper - retry execution with backoff and thread-scoped policies.
"""

import logging

from .config import (
    ExceptionHelperConfig,
    LoggingConfig,
    get_config,
    reload_config,
    set_config
)
from .logging_config import StructuredFormatter, get_logger, setup_logging
from .policy import Policy
from .retry import (
    RetryAttempt,
    RetryExecutor,
    RetryMixin,
    RetryOptions,
    excluding_predicate,
    get_retry_executor,
    matching_predicate,
    reset_retry_executor,
    retry_on_failure,
    retry_on_failure_condition,
    retry_on_failure_except,
    wrap_with_retry
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'ExceptionHelperConfig',
    'LoggingConfig',
    'get_config',
    'reload_config',
    'set_config',
    'StructuredFormatter',
    'get_logger',
    'setup_logging',
    'Policy',
    'RetryAttempt',
    'RetryExecutor',
    'RetryMixin',
    'RetryOptions',
    'excluding_predicate',
    'get_retry_executor',
    'matching_predicate',
    'reset_retry_executor',
    'retry_on_failure',
    'retry_on_failure_condition',
    'retry_on_failure_except',
    'wrap_with_retry'
]
