"""
Exception hierarchy for the CDN invalidator
"""

from typing import Any, Dict, Optional


class CDNInvalidatorError(Exception):
    """Base class for every error raised by this package"""


class ConfigurationError(CDNInvalidatorError):
    """Invalid action inputs or malformed credentials"""


class CloudAPIError(CDNInvalidatorError):
    """Error returned by a Yandex Cloud API

    Carries the HTTP status code (when there is one) so that the retry
    classifier can decide whether the failure is transient.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message: str = message
        self.status_code: Optional[int] = status_code
        self.response_data: Optional[Dict[str, Any]] = response_data
        super().__init__(self.message)


class AuthenticationError(CloudAPIError):
    """IAM token could not be obtained or was rejected"""


class PermissionDeniedError(CloudAPIError):
    """Service account lacks the role required for the call"""


class ResourceNotFoundError(CloudAPIError):
    """CDN resource does not exist or could not be located by CNAME"""


class OperationTimeoutError(CDNInvalidatorError):
    """Long-running operation did not finish before the deadline"""

    def __init__(self, operation_id: str, timeout_seconds: float) -> None:
        self.operation_id = operation_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Operation timeout after {timeout_seconds:g} seconds. "
            f"Operation ID: {operation_id}. "
            "Cache purge may still complete in the background."
        )


class OperationFailedError(CDNInvalidatorError):
    """Long-running operation finished with an error reported by the provider"""

    def __init__(self, operation_id: str, code: Any, message: str) -> None:
        self.operation_id = operation_id
        self.code = code
        self.error_message = message
        super().__init__(
            f"Operation failed: {message} (code: {code}). Operation ID: {operation_id}"
        )
