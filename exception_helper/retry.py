"""
Retry execution with configurable backoff and jitter.

Operations are retried when the exception they raise is accepted by a retry
predicate. Every invocation gets its own retry id so the attempt, success
and failure log events of one call can be correlated.
"""

import asyncio
import inspect
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, Sequence, Tuple, Type, Union

from exception_helper.config import ExceptionHelperConfig, get_config
from exception_helper.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_RETRY_COUNT = 3
DEFAULT_JITTER_MS = 1000
EXPONENTIAL_INITIAL_DELAY = 1.0

RetryPredicate = Callable[[Exception], bool]
LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


@dataclass
class RetryOptions:
    """Options accepted by every retry entry point"""
    retry_count: int = DEFAULT_RETRY_COUNT
    retry_sleep: Optional[float] = None
    exponential_backoff: bool = False
    log_retries: bool = True
    jitter: float = DEFAULT_JITTER_MS  # milliseconds

    def __post_init__(self):
        if self.retry_count < 0:
            raise ValueError(f"retry_count must be >= 0, got {self.retry_count}")
        if self.jitter < 0:
            raise ValueError(f"jitter must be >= 0, got {self.jitter}")
        if self.retry_sleep is not None and self.retry_sleep < 0:
            raise ValueError(f"retry_sleep must be >= 0, got {self.retry_sleep}")

    @property
    def initial_sleep_base(self) -> Optional[float]:
        """Delay before the first retry, ignoring jitter"""
        if self.exponential_backoff:
            return EXPONENTIAL_INITIAL_DELAY
        if self.retry_sleep is None:
            return None
        return float(self.retry_sleep)


@dataclass
class RetryAttempt:
    """Bookkeeping for a single retry invocation"""
    options: RetryOptions
    start_time: float
    retry_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    retries_remaining: int = field(init=False)
    current_sleep_base: Optional[float] = field(init=False)

    def __post_init__(self):
        self.retries_remaining = self.options.retry_count
        self.current_sleep_base = self.options.initial_sleep_base

    @property
    def retry_count(self) -> int:
        return self.options.retry_count

    @property
    def retries_used(self) -> int:
        return self.retry_count - self.retries_remaining


def _exception_tuple(exception_types: Sequence[Type[BaseException]]) -> Tuple[Type[BaseException], ...]:
    for exception_type in exception_types:
        if not (isinstance(exception_type, type) and issubclass(exception_type, BaseException)):
            raise TypeError(f"Expected an exception class, got {exception_type!r}")
    return tuple(exception_types)


def matching_predicate(*exception_types: Type[BaseException]) -> RetryPredicate:
    """Predicate accepting instances of the given types (all exceptions if none given)"""
    types = _exception_tuple(exception_types) or (Exception,)
    return lambda error: isinstance(error, types)


def excluding_predicate(*exception_types: Type[BaseException]) -> RetryPredicate:
    """Predicate accepting everything that is not an instance of the given types"""
    types = _exception_tuple(exception_types)
    return lambda error: not isinstance(error, types)


class RetryExecutor:
    """
    Runs operations with bounded, exception-selective retries.

    The executor holds no per-call state, so one instance can be shared
    between threads and tasks. Randomness, sleeping and the clock are
    injectable to make jitter and timing deterministic under test.
    """

    def __init__(
        self,
        logger: Optional[LoggerLike] = None,
        config: Optional[ExceptionHelperConfig] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], None] = time.sleep,
        async_sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.logger = logger or get_logger(__name__)
        self._config = config
        self._rng = rng or random.Random()
        self._sleep = sleep
        self._async_sleep = async_sleep
        self._clock = clock

    @property
    def config(self) -> ExceptionHelperConfig:
        return self._config or get_config()

    def retry_on_failure(self, func: Callable[[], Any], *exception_types: Type[BaseException], **options) -> Any:
        """
        Execute func, retrying when it raises one of exception_types

        Subclasses of the listed types are retried too. With no types
        listed, any Exception is retried.

        Args:
            func: Zero-argument callable to execute
            *exception_types: Exception classes that trigger a retry
            **options: RetryOptions fields

        Returns:
            Result of func

        Raises:
            The original exception when it is not retryable or retries are exhausted
        """
        return self._execute(func, matching_predicate(*exception_types), RetryOptions(**options))

    def retry_on_failure_except(self, func: Callable[[], Any], *exception_types: Type[BaseException], **options) -> Any:
        """Execute func, retrying on any exception that is not one of exception_types"""
        return self._execute(func, excluding_predicate(*exception_types), RetryOptions(**options))

    def retry_on_failure_condition(self, func: Callable[[], Any], predicate: RetryPredicate, **options) -> Any:
        """Execute func, retrying whenever predicate(exception) is true"""
        return self._execute(func, predicate, RetryOptions(**options))

    async def async_retry_on_failure(
        self, func: Callable[[], Awaitable[Any]], *exception_types: Type[BaseException], **options
    ) -> Any:
        """Awaitable counterpart of retry_on_failure; func returns an awaitable"""
        return await self._async_execute(func, matching_predicate(*exception_types), RetryOptions(**options))

    async def async_retry_on_failure_except(
        self, func: Callable[[], Awaitable[Any]], *exception_types: Type[BaseException], **options
    ) -> Any:
        """Awaitable counterpart of retry_on_failure_except"""
        return await self._async_execute(func, excluding_predicate(*exception_types), RetryOptions(**options))

    async def async_retry_on_failure_condition(
        self, func: Callable[[], Awaitable[Any]], predicate: RetryPredicate, **options
    ) -> Any:
        """Awaitable counterpart of retry_on_failure_condition"""
        return await self._async_execute(func, predicate, RetryOptions(**options))

    def _execute(self, func: Callable[[], Any], predicate: RetryPredicate, options: RetryOptions) -> Any:
        attempt = RetryAttempt(options=options, start_time=self._clock())

        while True:
            try:
                result = func()
            except Exception as error:
                should_retry, sleep_time = self._prepare_retry(attempt, error, predicate)
                if not should_retry:
                    raise
            else:
                self._record_success(attempt)
                return result

            if sleep_time is not None:
                self._sleep(sleep_time)

    async def _async_execute(
        self, func: Callable[[], Awaitable[Any]], predicate: RetryPredicate, options: RetryOptions
    ) -> Any:
        attempt = RetryAttempt(options=options, start_time=self._clock())

        while True:
            try:
                result = func()
                awaitable = inspect.isawaitable(result)
                if awaitable:
                    result = await result
            except Exception as error:
                should_retry, sleep_time = self._prepare_retry(attempt, error, predicate)
                if not should_retry:
                    raise
            else:
                # Usage error, never retried
                if not awaitable:
                    raise TypeError(f"{func!r} did not return an awaitable")
                self._record_success(attempt)
                return result

            if sleep_time is not None:
                await self._async_sleep(sleep_time)

    def _prepare_retry(
        self, attempt: RetryAttempt, error: Exception, predicate: RetryPredicate
    ) -> Tuple[bool, Optional[float]]:
        """Decide whether to run again and how long to wait first"""
        if not predicate(error):
            return False, None

        if attempt.retries_remaining <= 0:
            if attempt.options.log_retries:
                self._log_failure(attempt, error)
            return False, None

        sleep_time = self._next_sleep_time(attempt)
        if attempt.options.log_retries:
            self._log_attempt(attempt, error, sleep_time)
        attempt.retries_remaining -= 1
        return True, sleep_time

    def _next_sleep_time(self, attempt: RetryAttempt) -> Optional[float]:
        base = attempt.current_sleep_base
        if attempt.options.exponential_backoff and base is not None:
            attempt.current_sleep_base = base * 2

        if base is None or self.config.disable_retry_sleep:
            return None
        return base + self._rng.uniform(0, attempt.options.jitter) / 1000.0

    def _record_success(self, attempt: RetryAttempt) -> None:
        if attempt.retries_used == 0 or not attempt.options.log_retries:
            return
        self.logger.info(f"Operation succeeded after {attempt.retries_used} retries", extra={
            "event_type": "retry_success",
            "retries_required": attempt.retries_used,
            "retry_id": attempt.retry_id,
            "time_elapsed": self._elapsed(attempt)
        })

    def _log_attempt(self, attempt: RetryAttempt, error: Exception, sleep_time: Optional[float]) -> None:
        self.logger.warning(
            f"Retrying after {type(error).__qualname__}: {error} "
            f"({attempt.retries_remaining} retries remaining)",
            extra={
                "event_type": "retry_attempt",
                "exception_class": type(error).__qualname__,
                "exception_message": str(error),
                "retries_remaining": attempt.retries_remaining,
                "retry_id": attempt.retry_id,
                "sleep_before_retry": sleep_time,
                "time_elapsed": self._elapsed(attempt)
            }
        )

    def _log_failure(self, attempt: RetryAttempt, error: Exception) -> None:
        self.logger.error(
            f"Giving up after {attempt.retries_used} retries: {type(error).__qualname__}: {error}",
            extra={
                "event_type": "retry_failure",
                "exception_class": type(error).__qualname__,
                "exception_message": str(error),
                "retries_attempted": attempt.retries_used,
                "retry_id": attempt.retry_id,
                "time_elapsed": self._elapsed(attempt)
            }
        )

    def _elapsed(self, attempt: RetryAttempt) -> float:
        return self._clock() - attempt.start_time


class RetryMixin:
    """
    Gives a class retry_on_failure* methods.

    Events are logged through the host's own `logger` attribute when it is a
    logging.Logger (or adapter); the attribute is never replaced.
    """

    def _retry_executor(self) -> RetryExecutor:
        host_logger = getattr(self, "logger", None)
        if isinstance(host_logger, (logging.Logger, logging.LoggerAdapter)):
            return RetryExecutor(logger=host_logger)
        return get_retry_executor()

    def retry_on_failure(self, func: Callable[[], Any], *exception_types: Type[BaseException], **options) -> Any:
        return self._retry_executor().retry_on_failure(func, *exception_types, **options)

    def retry_on_failure_except(self, func: Callable[[], Any], *exception_types: Type[BaseException], **options) -> Any:
        return self._retry_executor().retry_on_failure_except(func, *exception_types, **options)

    def retry_on_failure_condition(self, func: Callable[[], Any], predicate: RetryPredicate, **options) -> Any:
        return self._retry_executor().retry_on_failure_condition(func, predicate, **options)


# Global retry executor instance
_retry_executor: Optional[RetryExecutor] = None


def get_retry_executor() -> RetryExecutor:
    """Get the global retry executor instance"""
    global _retry_executor
    if _retry_executor is None:
        _retry_executor = RetryExecutor()
    return _retry_executor


def reset_retry_executor() -> None:
    """Drop the global executor so the next call builds a fresh one"""
    global _retry_executor
    _retry_executor = None


def retry_on_failure(func: Callable[[], Any], *exception_types: Type[BaseException], **options) -> Any:
    """Execute func with the global executor, retrying on exception_types"""
    return get_retry_executor().retry_on_failure(func, *exception_types, **options)


def retry_on_failure_except(func: Callable[[], Any], *exception_types: Type[BaseException], **options) -> Any:
    """Execute func with the global executor, retrying on anything but exception_types"""
    return get_retry_executor().retry_on_failure_except(func, *exception_types, **options)


def retry_on_failure_condition(func: Callable[[], Any], predicate: RetryPredicate, **options) -> Any:
    """Execute func with the global executor, retrying while predicate accepts the exception"""
    return get_retry_executor().retry_on_failure_condition(func, predicate, **options)


def wrap_with_retry(*exception_types: Type[BaseException], executor: Optional[RetryExecutor] = None, **options):
    """
    Decorator version of retry_on_failure

    Works on plain functions, methods and coroutine functions. Options are
    validated when the decorator is applied.

    Args:
        *exception_types: Exception classes that trigger a retry
        executor: Executor to run through, defaults to the global one
        **options: RetryOptions fields
    """
    RetryOptions(**options)
    _exception_tuple(exception_types)

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                return await (executor or get_retry_executor()).async_retry_on_failure(
                    lambda: func(*args, **kwargs), *exception_types, **options
                )
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            return (executor or get_retry_executor()).retry_on_failure(
                lambda: func(*args, **kwargs), *exception_types, **options
            )
        return wrapper
    return decorator
