"""
Yandex Cloud IAM authentication

Exchanges a service account authorized key for a short-lived IAM token, or
passes through a pre-generated IAM token. Never logs key material or tokens.
"""

import json
import time
from typing import Any, Dict, Optional

import jwt
import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from cdn_invalidator.exceptions import AuthenticationError, ConfigurationError
from cdn_invalidator.utils.core.logger import get_logger

logger = get_logger(__name__, utility="auth")

IAM_TOKEN_URL = "https://iam.api.cloud.yandex.net/iam/v1/tokens"
JWT_ALGORITHM = "PS256"
JWT_LIFETIME_SECONDS = 3600
IAM_REQUEST_TIMEOUT = 10


class ServiceAccountKey(BaseModel):
    """Service account authorized key as produced by ``yc iam key create``"""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Key ID")
    service_account_id: str = Field(..., min_length=1)
    private_key: str = Field(..., min_length=1, description="PEM encoded private key")
    key_algorithm: Optional[str] = None
    public_key: Optional[str] = None
    created_at: Optional[str] = None

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v):
        if "BEGIN PRIVATE KEY" not in v:
            raise ValueError(
                'Invalid private key format. Expected PEM format with "BEGIN PRIVATE KEY"'
            )
        return v


def _describe_validation_error(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        field = ".".join(str(part) for part in item.get("loc", ())) or "key"
        if item.get("type") == "missing":
            problems.append(f'Service account key missing "{field}" field')
        else:
            # pydantic prefixes custom validator messages with "Value error, "
            problems.append(str(item.get("msg", "")).replace("Value error, ", ""))
    return "; ".join(problems)


def parse_service_account_key(service_account_key_json: str) -> ServiceAccountKey:
    """Parse and validate the JSON text of an authorized key"""
    try:
        data: Any = json.loads(service_account_key_json)
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid service account key JSON format: {e.msg}. "
            "Ensure the key is properly formatted JSON."
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError("Service account key must be a JSON object")

    try:
        return ServiceAccountKey.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(_describe_validation_error(e)) from e


def create_jwt(key: ServiceAccountKey, now: Optional[int] = None) -> str:
    """
    Create a signed JWT for the IAM token exchange

    Args:
        key: Validated service account key
        now: Issue time as unix seconds (defaults to current time)

    Returns:
        Encoded PS256 JWT with the key id in its header
    """
    issued_at = int(time.time()) if now is None else now
    payload: Dict[str, Any] = {
        "aud": IAM_TOKEN_URL,
        "iss": key.service_account_id,
        "iat": issued_at,
        "exp": issued_at + JWT_LIFETIME_SECONDS,
    }

    try:
        return jwt.encode(
            payload, key.private_key, algorithm=JWT_ALGORITHM, headers={"kid": key.id}
        )
    except (jwt.PyJWTError, ValueError, TypeError) as e:
        raise AuthenticationError(f"Failed to create JWT: {e}") from e


def exchange_jwt_for_iam_token(
    jwt_token: str, session: Optional[requests.Session] = None
) -> str:
    """
    Exchange a signed JWT for an IAM token

    Raises:
        AuthenticationError: On HTTP failure or a response without ``iamToken``
    """
    http = session or requests.Session()
    try:
        response = http.post(
            IAM_TOKEN_URL,
            json={"jwt": jwt_token},
            headers={"Content-Type": "application/json"},
            timeout=IAM_REQUEST_TIMEOUT,
        )
    except requests.RequestException as e:
        raise AuthenticationError(f"Failed to exchange JWT for IAM token: {e}") from e
    finally:
        if session is None:
            http.close()

    if response.status_code != 200:
        try:
            message = response.json().get("message") or response.reason
        except ValueError:
            message = response.reason
        raise AuthenticationError(
            f"Failed to exchange JWT for IAM token: {response.status_code} - {message}",
            status_code=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise AuthenticationError("Invalid response from IAM token endpoint") from e

    token = data.get("iamToken") if isinstance(data, dict) else None
    if not token:
        raise AuthenticationError("Invalid response from IAM token endpoint")
    return token


def get_iam_token(key: ServiceAccountKey, session: Optional[requests.Session] = None) -> str:
    """Sign a JWT with the service account key and exchange it for an IAM token"""
    logger.debug(f"Requesting IAM token for service account {key.service_account_id}")
    return exchange_jwt_for_iam_token(create_jwt(key), session=session)


def get_auth_token(
    service_account_key_json: Optional[str],
    iam_token: Optional[str],
    session: Optional[requests.Session] = None,
) -> str:
    """
    Resolve the IAM token from either a ready-made token or a service account key

    A provided ``iam_token`` wins; otherwise the service account key is required.
    """
    if iam_token:
        if not iam_token.strip():
            raise ConfigurationError("IAM token must be a non-empty string")
        logger.debug("Using pre-generated IAM token")
        return iam_token.strip()

    if not service_account_key_json or not service_account_key_json.strip():
        raise ConfigurationError(
            "Either service-account-key or iam-token must be provided. "
            "See action documentation for authentication setup."
        )

    key = parse_service_account_key(service_account_key_json)
    return get_iam_token(key, session=session)
