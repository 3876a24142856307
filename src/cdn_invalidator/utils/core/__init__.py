# Core utilities package
# Contains foundational infrastructure utilities for the application

__all__ = [
    "get_logger",
    "shutdown_logging",
    "RetryAttempt",
    "RetryConfig",
    "execute_with_retry",
    "async_execute_with_retry",
    "is_retryable_error",
    "retry",
]

from .logger import get_logger, shutdown_logging
from .retry import (
    RetryAttempt,
    RetryConfig,
    async_execute_with_retry,
    execute_with_retry,
    is_retryable_error,
    retry,
)
