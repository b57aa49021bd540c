"""
Shared fixtures for exception_helper tests
"""

import logging
import random
from unittest.mock import Mock

import pytest

from exception_helper.config import ExceptionHelperConfig, set_config
from exception_helper.policy import Policy
from exception_helper.retry import RetryExecutor, reset_retry_executor


@pytest.fixture(autouse=True)
def isolated_globals():
    """Give every test a fresh configuration and global executor"""
    set_config(ExceptionHelperConfig())
    reset_retry_executor()
    yield
    set_config(None)
    reset_retry_executor()


@pytest.fixture(autouse=True)
def clean_policies():
    """Clear out policies between tests"""
    Policy.reset_policies()
    yield
    Policy.reset_policies()


@pytest.fixture
def rng():
    """Jitter source that always returns the same value"""
    source = Mock(spec=random.Random)
    source.uniform.return_value = 250
    return source


@pytest.fixture
def sleep():
    return Mock()


@pytest.fixture
def retry_logger():
    return logging.getLogger("tests.retry")


@pytest.fixture
def executor(rng, sleep, retry_logger):
    """Executor with deterministic jitter, a fixed clock and no real sleeping"""
    return RetryExecutor(
        logger=retry_logger,
        config=ExceptionHelperConfig(),
        rng=rng,
        sleep=sleep,
        clock=Mock(return_value=100.0)
    )
