"""
Retry mechanism with deterministic exponential backoff.

This module decides whether a failed provider call is worth repeating, how long
to wait between attempts, and drives the attempts themselves. The original
exception of the last attempt is always re-raised unchanged so callers can
inspect provider-specific details.
"""

import asyncio
import errno
import functools
import inspect
import socket
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterator, Optional, TypeVar
import logging

import requests

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
RETRYABLE_NETWORK_CODES = frozenset({"ECONNRESET", "ETIMEDOUT", "ENOTFOUND", "ECONNREFUSED"})
THROTTLING_MARKERS = ("Throttling", "TooManyRequests", "Rate limit")

# How far down __cause__/__context__/reason chains to look for a network code
_MAX_CHAIN_DEPTH = 8


@dataclass(frozen=True)
class RetryAttempt:
    """Details of a failed, non-terminal attempt handed to the ``on_retry`` observer."""

    attempt: int  # 1-based ordinal of the attempt that just failed
    max_attempts: int
    delay: float  # seconds to wait before the next attempt
    error: BaseException


@dataclass(frozen=True)
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 12
    initial_delay: float = 10.0  # seconds
    max_delay: float = 120.0  # seconds
    factor: float = 1.5  # exponential backoff multiplier
    on_retry: Optional[Callable[[RetryAttempt], None]] = None
    # Optional transform of each slept delay, e.g. to spread out concurrent callers
    jitter: Optional[Callable[[float], float]] = None

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int):
            raise ValueError(f"max_attempts must be an integer, got {self.max_attempts!r}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.initial_delay < 0:
            raise ValueError(f"initial_delay must be >= 0, got {self.initial_delay}")
        if self.max_delay < self.initial_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= initial_delay ({self.initial_delay})"
            )
        if self.factor < 1:
            raise ValueError(f"factor must be >= 1, got {self.factor}")


DEFAULT_RETRY_CONFIG = RetryConfig()


def _field(obj: Any, name: str) -> Any:
    """Read an attribute or mapping key without ever raising."""
    try:
        if isinstance(obj, Mapping):
            return obj.get(name)
        return getattr(obj, name, None)
    except Exception:
        return None


def _as_status(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _status_code(error: Any) -> Optional[int]:
    """HTTP status carried by the error itself or by its attached response."""
    for name in ("status_code", "status"):
        status = _as_status(_field(error, name))
        if status is not None:
            return status

    response = _field(error, "response")
    if response is None:
        return None
    for name in ("status_code", "status"):
        status = _as_status(_field(response, name))
        if status is not None:
            return status
    return None


def _next_in_chain(error: Any) -> Any:
    for name in ("__cause__", "__context__", "reason"):
        nested = _field(error, name)
        if isinstance(nested, BaseException):
            return nested
    args = _field(error, "args")
    if isinstance(args, tuple):
        for arg in args:
            if isinstance(arg, BaseException):
                return arg
    return None


def _network_error_code(error: Any) -> Optional[str]:
    """Symbolic network error code (ECONNRESET, ...) found on the error or its causes."""
    current = error
    for _ in range(_MAX_CHAIN_DEPTH):
        if current is None:
            return None

        code = _field(current, "code")
        if isinstance(code, str) and code:
            return code

        if isinstance(current, socket.gaierror):
            return "ENOTFOUND"
        if isinstance(current, (TimeoutError, requests.exceptions.Timeout)):
            return "ETIMEDOUT"
        if isinstance(current, OSError):
            err_no = _field(current, "errno")
            if isinstance(err_no, int) and err_no in errno.errorcode:
                return errno.errorcode[err_no]

        current = _next_in_chain(current)
    return None


def _message(error: Any) -> Optional[str]:
    if isinstance(error, str):
        return error
    message = _field(error, "message")
    if isinstance(message, str):
        return message
    if isinstance(error, BaseException):
        try:
            return str(error)
        except Exception:
            return None
    return None


def is_retryable_error(error: Any) -> bool:
    """Check if a failure is transient and the call should be attempted again.

    Rules, first match wins:
      1. an HTTP status code decides alone (408, 429 and 5xx gateway codes retry)
      2. a known network error code (reset, timeout, DNS, refused) retries
      3. a throttling message retries
    Never raises, whatever the shape of ``error``.
    """
    status = _status_code(error)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES

    if _network_error_code(error) in RETRYABLE_NETWORK_CODES:
        return True

    message = _message(error)
    if message:
        return any(marker in message for marker in THROTTLING_MARKERS)

    return False


def next_delay(current_delay: float, config: RetryConfig) -> float:
    """Delay following ``current_delay``: scaled by the factor and clamped to max_delay."""
    return min(current_delay * config.factor, config.max_delay)


def backoff_delays(config: RetryConfig) -> Iterator[float]:
    """Yield the waits between attempts (max_attempts - 1 values, no jitter)."""
    delay = config.initial_delay
    for _ in range(config.max_attempts - 1):
        yield delay
        delay = next_delay(delay, config)


def _should_retry(error: Exception, attempt: int, config: RetryConfig) -> bool:
    if not is_retryable_error(error):
        logger.debug(f"Non-retryable exception: {type(error).__name__}: {error}")
        return False
    if attempt >= config.max_attempts:
        logger.error(
            f"All {config.max_attempts} attempts failed. "
            f"Last error: {type(error).__name__}: {error}"
        )
        return False
    return True


def _notify_retry(error: Exception, attempt: int, delay: float, config: RetryConfig) -> float:
    """Run the observer for a retried failure and return the seconds to sleep."""
    wait = max(0.0, config.jitter(delay)) if config.jitter else delay

    if config.on_retry is not None:
        config.on_retry(
            RetryAttempt(attempt=attempt, max_attempts=config.max_attempts, delay=wait, error=error)
        )
    else:
        # the observer, when present, owns user-facing retry messages
        logger.warning(
            f"Attempt {attempt}/{config.max_attempts} failed "
            f"({type(error).__name__}). Retrying in {wait:.2f}s: {error}"
        )
    return wait


def execute_with_retry(operation: Callable[[], T], config: Optional[RetryConfig] = None) -> T:
    """
    Call ``operation`` until it succeeds, fails permanently, or attempts run out.

    Args:
        operation: Zero-argument callable. It may be invoked up to
            ``config.max_attempts`` times, so it must be safe to repeat.
        config: Retry configuration. Uses defaults if None.

    Returns:
        Whatever ``operation`` returned on the first successful attempt.

    Raises:
        The exception of the last attempt, unchanged, when it is not retryable
        or when no attempts are left.
    """
    config = config or DEFAULT_RETRY_CONFIG
    attempt = 0
    delay = config.initial_delay

    while attempt < config.max_attempts:
        attempt += 1
        try:
            return operation()
        except Exception as e:
            if not _should_retry(e, attempt, config):
                raise
            wait = _notify_retry(e, attempt, delay, config)

        time.sleep(wait)
        delay = next_delay(delay, config)

    raise RuntimeError(f"Retry loop exited without a result after {attempt} attempts")


async def async_execute_with_retry(
    operation: Callable[[], Awaitable[T]], config: Optional[RetryConfig] = None
) -> T:
    """Coroutine twin of :func:`execute_with_retry`; awaits the operation and sleeps with asyncio."""
    config = config or DEFAULT_RETRY_CONFIG
    attempt = 0
    delay = config.initial_delay

    while attempt < config.max_attempts:
        attempt += 1
        try:
            return await operation()
        except Exception as e:
            if not _should_retry(e, attempt, config):
                raise
            wait = _notify_retry(e, attempt, delay, config)

        await asyncio.sleep(wait)
        delay = next_delay(delay, config)

    raise RuntimeError(f"Retry loop exited without a result after {attempt} attempts")


def retry(config: Optional[RetryConfig] = None) -> Callable:
    """
    Decorator applying the retry policy to sync or async functions.

    Args:
        config: Retry configuration. Uses defaults if None.

    Returns:
        Decorated function with retry logic.

    Example:
        @retry(config=RetryConfig(max_attempts=5, initial_delay=2.0))
        def purge():
            return session.post(url, json=body)
    """
    if config is None:
        config = DEFAULT_RETRY_CONFIG

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> T:
                return await async_execute_with_retry(lambda: func(*args, **kwargs), config)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> T:
            return execute_with_retry(lambda: func(*args, **kwargs), config)

        return wrapper

    return decorator
