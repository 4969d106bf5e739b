"""
Retry logic with exponential backoff for throttled AWS calls.
"""

import logging
import time
from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from botocore.exceptions import ClientError

from ocp_provision.exceptions import RetryableError

T = TypeVar("T")

logger = logging.getLogger(__name__)

THROTTLING_ERROR_CODES = {
    "Throttling",
    "ThrottlingException",
    "RequestLimitExceeded",
    "TooManyRequestsException",
    "RequestThrottled",
    "SlowDown",
}


def retry_with_backoff(
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 60.0,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    should_retry: Callable[[Exception], bool] | None = None,
    on_retry: Callable[[Exception, int, int], None] | None = None,
):
    """
    Retry the decorated call, sleeping initial_delay * backoff_factor**n
    (capped at max_delay) between attempts.

    Exceptions outside retryable_exceptions, or rejected by should_retry,
    propagate immediately. When every attempt fails the last error is
    wrapped in RetryableError. on_retry receives (error, attempt,
    max_attempts) before each sleep.

    Example:
        @retry_with_backoff(max_attempts=5, should_retry=is_throttling_error)
        def describe(client, name):
            return client.describe_stacks(StackName=name)
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if should_retry is not None and not should_retry(e):
                        raise
                    if attempt == max_attempts:
                        raise RetryableError(e, attempt, max_attempts) from e

                    wait = min(initial_delay * backoff_factor ** (attempt - 1), max_delay)
                    logger.debug(
                        "Attempt %d/%d failed, retrying in %.1fs: %s",
                        attempt,
                        max_attempts,
                        wait,
                        e,
                    )
                    if on_retry is not None:
                        on_retry(e, attempt, max_attempts)
                    time.sleep(wait)

            raise AssertionError("unreachable")

        return wrapper

    return decorator


def is_throttling_error(error: Exception) -> bool:
    """
    Determine if an AWS error is a throttling response worth retrying.

    Args:
        error: The exception to check

    Returns:
        True for ClientErrors carrying a throttling error code
    """
    if not isinstance(error, ClientError):
        return False
    code = error.response.get("Error", {}).get("Code", "")
    return code in THROTTLING_ERROR_CODES


class RetryStrategy:
    """Named backoff presets; the workspace config selects one with retry.strategy."""

    AGGRESSIVE = {
        "max_attempts": 5,
        "initial_delay": 0.5,
        "backoff_factor": 1.5,
        "max_delay": 10.0,
    }

    MODERATE = {
        "max_attempts": 3,
        "initial_delay": 1.0,
        "backoff_factor": 2.0,
        "max_delay": 30.0,
    }

    CONSERVATIVE = {
        "max_attempts": 2,
        "initial_delay": 2.0,
        "backoff_factor": 3.0,
        "max_delay": 60.0,
    }

    AWS_API = {
        "max_attempts": 5,
        "initial_delay": 2.0,
        "backoff_factor": 2.0,
        "max_delay": 60.0,
    }

    NAMES = ("AGGRESSIVE", "MODERATE", "CONSERVATIVE", "AWS_API")

    @staticmethod
    def apply(strategy_name: str = "MODERATE") -> dict:
        """
        Get retry parameters for a named strategy.

        Args:
            strategy_name: Name of the strategy
                (AGGRESSIVE, MODERATE, CONSERVATIVE, AWS_API)

        Returns:
            Dictionary of retry parameters
        """
        if strategy_name not in RetryStrategy.NAMES:
            strategy_name = "MODERATE"
        strategy = getattr(RetryStrategy, strategy_name)
        return strategy.copy()
