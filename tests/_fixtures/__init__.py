"""Fixtures package for tests.

Re-export commonly used fakes and helpers for convenient imports
from `tests._fixtures` package.
"""

from .frozen_time import FrozenClock
from .remote_api_responses import (
    OPERATION_ID,
    RESOURCE_ID,
    FakeResponse,
    canned_api_factory,
    operation_payload,
)

__all__ = [
    "FrozenClock",
    "OPERATION_ID",
    "RESOURCE_ID",
    "FakeResponse",
    "canned_api_factory",
    "operation_payload",
]
