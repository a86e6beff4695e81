"""Retry utilities with exponential backoff."""
from __future__ import annotations

import functools
import logging
import random
import time
from collections.abc import Callable
from typing import Any, TypeVar

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures worth one more attempt. Everything else (auth, 4xx, bad payloads) fails fast.
DEFAULT_RETRY_EXCEPTIONS: tuple[type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


def retry_with_backoff(
    max_retries: int = 1,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retry_on: tuple[type[Exception], ...] | None = None,
    on_retry: Callable[[Exception, int, float], None] | None = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential backoff calculation
        jitter: Whether to add random jitter to the delay
        retry_on: Tuple of exception types to retry on (default: connection errors and timeouts)
        on_retry: Optional callback called on each retry with (exception, attempt, delay)
    """
    exceptions_to_catch = retry_on or DEFAULT_RETRY_EXCEPTIONS

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions_to_catch as e:
                    if attempt >= max_retries:
                        logger.error(
                            "[retry] %s failed after %d attempts: %s",
                            func.__name__,
                            max_retries + 1,
                            e,
                        )
                        raise

                    delay = min(base_delay * (exponential_base**attempt), max_delay)
                    if jitter:
                        delay = delay * (0.75 + random.random() * 0.5)

                    logger.warning(
                        "[retry] %s attempt %d/%d failed: %s. Retrying in %.2fs",
                        func.__name__,
                        attempt + 1,
                        max_retries + 1,
                        e,
                        delay,
                    )

                    if on_retry:
                        on_retry(e, attempt + 1, delay)

                    time.sleep(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator


# Remote calls time out once, get one more try, then fail the request.
remote_retry = retry_with_backoff(max_retries=1, base_delay=0.5, max_delay=5.0)
