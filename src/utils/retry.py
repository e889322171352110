"""
Retry with exponential backoff for transient database failures.

The merge engine only retries reads (connection checks and catalog
queries). Row inserts and updates are never retried: a failed write is
recorded against its row instead.

Usage:
    from src.utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3, base_delay=0.5)
    def list_tables(handle):
        return handle.fetch_rows("SELECT ...")
"""

import logging
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

logger = logging.getLogger(__name__)

# Substrings of driver messages (MySQL, PostgreSQL, ODBC) for errors that go away on retry
RETRYABLE_PATTERNS = (
    "connection",
    "timeout",
    "deadlock",
    "lock wait timeout",
    "lost connection",
    "server has gone away",
    "can't connect",
    "unable to connect",
    "broken pipe",
    "network error",
    "communication link failure",
)

RETRYABLE_EXCEPTION_NAMES = frozenset({
    "connectionerror",
    "timeouterror",
    "operationalerror",
    "interfaceerror",
})

JITTER_FRACTION = 0.25
MIN_JITTERED_DELAY = 0.1


def backoff_delay(attempt: int, base_delay: float, max_delay: float, jitter: bool = True) -> float:
    """
    Seconds to wait after failed attempt number ``attempt`` (0-based).

    The delay doubles per attempt up to ``max_delay``; jitter moves it by up
    to a quarter either way without going below 0.1s.
    """
    delay = min(base_delay * 2 ** attempt, max_delay)
    if not jitter:
        return delay
    spread = delay * JITTER_FRACTION
    return max(MIN_JITTERED_DELAY, delay + random.uniform(-spread, spread))


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Whether ``exception`` looks transient.

    Connection, timeout, lock and deadlock errors are; syntax errors and
    constraint violations are not.
    """
    message = str(exception).lower()
    type_name = type(exception).__name__.lower()
    if type_name in RETRYABLE_EXCEPTION_NAMES:
        return True
    return any(pattern in message or pattern in type_name for pattern in RETRYABLE_PATTERNS)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
    retry_if: Callable[[Exception], bool] | None = None,
):
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry, in seconds
        max_delay: Cap on any single delay
        jitter: Randomize delays by up to 25%
        retryable_exceptions: Only these exception types are retried (default: all)
        on_retry: Called as on_retry(retry_number, exception, delay) before sleeping;
            errors it raises are logged and ignored
        retry_if: Extra predicate an exception must satisfy to be retried

    The last exception is re-raised once retries run out.
    """
    def decorator(func: Callable) -> Callable:
        name = getattr(func, "__name__", "function")

        def should_retry(error: Exception) -> bool:
            if retryable_exceptions and not isinstance(error, retryable_exceptions):
                return False
            return retry_if is None or retry_if(error)

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not should_retry(e):
                        logger.error(f"{name} failed with non-retryable {type(e).__name__}: {e}")
                        raise
                    if attempt >= max_retries:
                        logger.error(f"{name} still failing after {max_retries} retries: {e}")
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, jitter)
                    attempt += 1
                    logger.warning(
                        f"{name} failed ({type(e).__name__}: {e}); "
                        f"retry {attempt}/{max_retries} in {delay:.2f}s"
                    )
                    if on_retry:
                        try:
                            on_retry(attempt, e, delay)
                        except Exception as callback_error:
                            logger.error(f"Retry callback for {name} raised: {callback_error}")
                    time.sleep(delay)

        return wrapper
    return decorator


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Callable[[int, Exception, float], None] | None = None,
):
    """
    retry_with_backoff for database reads: only transient errors are retried.

    Syntax errors, unknown columns and constraint violations fail on the
    first attempt.
    """
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        on_retry=on_retry,
        retry_if=is_retryable_db_exception,
    )
