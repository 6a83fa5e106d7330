"""Retry logic and exponential backoff utilities."""

import asyncio
import inspect
import logging
import random
import time
from functools import wraps
from typing import Any, Callable

logger = logging.getLogger(__name__)


def exponential_backoff(attempt: int, base_delay: float = 1.0, max_delay: float = 60.0) -> float:
    """Calculate exponential backoff delay with jitter."""
    delay = min(base_delay * (2 ** attempt), max_delay)
    # Jitter keeps parallel callers from retrying in lockstep
    jitter = random.uniform(0, delay * 0.1)
    return delay + jitter


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: tuple = (Exception,),
):
    """Decorator for exponential backoff retry logic.

    Works for both plain functions and coroutine functions; coroutines sleep
    with ``asyncio.sleep`` so the event loop is never blocked between
    attempts.
    """

    def decorator(func: Callable) -> Callable:
        def _log_retry(attempt: int, error: Exception) -> float:
            delay = exponential_backoff(attempt, base_delay, max_delay)
            logger.warning(
                f"Attempt {attempt + 1} of {func.__name__} failed: {error}. "
                f"Retrying in {delay:.2f}s..."
            )
            return delay

        if inspect.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                for attempt in range(max_retries + 1):
                    try:
                        return await func(*args, **kwargs)
                    except exceptions as e:
                        if attempt == max_retries:
                            logger.error(
                                f"Function {func.__name__} failed after {max_retries} retries: {e}"
                            )
                            raise
                        await asyncio.sleep(_log_retry(attempt, e))

            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_retries:
                        logger.error(
                            f"Function {func.__name__} failed after {max_retries} retries: {e}"
                        )
                        raise
                    time.sleep(_log_retry(attempt, e))

        return wrapper

    return decorator


class RetryableError(Exception):
    """Base class for errors that should trigger retries."""


class APIRateLimitError(RetryableError):
    """Raised when API rate limit is hit."""


class NetworkError(RetryableError):
    """Raised for network-related errors."""


class TemporaryServiceError(RetryableError):
    """Raised for temporary service unavailability."""


def retry_api_call(max_retries: int = 5, base_delay: float = 2.0):
    """Retry decorator specifically for API calls with longer delays."""
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        max_delay=120.0,
        exceptions=(APIRateLimitError, NetworkError, TemporaryServiceError),
    )
