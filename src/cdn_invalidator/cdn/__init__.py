"""
Yandex Cloud CDN Module

Client for locating CDN resources, purging their cache and waiting for the
resulting long-running operations.
"""

from .client import YandexCDNClient
from .models import CDNResource, Operation, OperationError, OperationMetadata
from .operations import OperationPoller, OperationState

__all__ = [
    "YandexCDNClient",
    "CDNResource",
    "Operation",
    "OperationError",
    "OperationMetadata",
    "OperationPoller",
    "OperationState",
]
