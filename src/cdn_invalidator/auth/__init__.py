"""
Yandex Cloud authentication helpers
"""

from .iam import (
    ServiceAccountKey,
    create_jwt,
    exchange_jwt_for_iam_token,
    get_auth_token,
    get_iam_token,
    parse_service_account_key,
)

__all__ = [
    "ServiceAccountKey",
    "create_jwt",
    "exchange_jwt_for_iam_token",
    "get_auth_token",
    "get_iam_token",
    "parse_service_account_key",
]
