"""
Yandex Cloud CDN API client with retry handling for cache purge operations
"""

from typing import Any, Dict, List, Optional

import requests

from cdn_invalidator.cdn.models import CDNResource, Operation
from cdn_invalidator.cdn.operations import (
    DEFAULT_TIMEOUT_SECONDS,
    POLL_INTERVAL_SECONDS,
    OperationPoller,
)
from cdn_invalidator.exceptions import (
    AuthenticationError,
    CloudAPIError,
    PermissionDeniedError,
    ResourceNotFoundError,
)
from cdn_invalidator.utils.core.logger import get_logger
from cdn_invalidator.utils.core.retry import RetryAttempt, RetryConfig, execute_with_retry

logger = get_logger(__name__, utility="cdn")

DEFAULT_CDN_ENDPOINT = "https://cdn.api.cloud.yandex.net"
DEFAULT_OPERATION_ENDPOINT = "https://operation.api.cloud.yandex.net"
REQUEST_TIMEOUT = 30
LIST_PAGE_SIZE = 1000


def log_retry_attempt(attempt: RetryAttempt) -> None:
    """Default ``on_retry`` observer: one warning line per retried failure"""
    error = attempt.error
    status = getattr(error, "status_code", None)
    if status is None:
        response = getattr(error, "response", None)
        status = getattr(response, "status_code", None)
    message = getattr(error, "message", None) or str(error) or type(error).__name__
    logger.warning(
        f"Retry attempt {attempt.attempt}/{attempt.max_attempts} after {attempt.delay:g}s. "
        f"Error: {message} (HTTP {status if status is not None else 'N/A'})"
    )


class YandexCDNClient:
    """Client for the Yandex Cloud CDN and Operations APIs"""

    def __init__(
        self,
        iam_token: str,
        endpoint: str = DEFAULT_CDN_ENDPOINT,
        operation_endpoint: str = DEFAULT_OPERATION_ENDPOINT,
        retry_config: Optional[RetryConfig] = None,
        session: Optional[requests.Session] = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        """
        Initialize the CDN client

        Args:
            iam_token: Yandex Cloud IAM token
            endpoint: CDN API endpoint
            operation_endpoint: Operations API endpoint
            retry_config: Retry policy for the purge request (defaults: 12 attempts,
                10s initial delay, 1.5 factor, 120s max delay)
            session: HTTP session owned by this client (created if omitted)
            poll_interval: Seconds between operation status checks
        """
        if not iam_token or not isinstance(iam_token, str):
            raise ValueError("IAM token is required and must be a string")

        self.endpoint: str = (endpoint or DEFAULT_CDN_ENDPOINT).rstrip("/")
        self.operation_endpoint: str = operation_endpoint.rstrip("/")
        self.retry_config: RetryConfig = retry_config or RetryConfig(on_retry=log_retry_attempt)
        self.session: requests.Session = session or requests.Session()
        self.session.headers.update(
            {
                "Authorization": f"Bearer {iam_token}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            }
        )
        self.poller = OperationPoller(self.get_operation_status, poll_interval=poll_interval)

    def _request(self, method: str, url: str, **kwargs: Any) -> Dict[str, Any]:
        """
        Make a single HTTP request without retry logic

        Raises:
            CloudAPIError: For non-2xx responses and malformed JSON, with the status code
            requests.RequestException: For network-level failures
        """
        logger.debug(f"{method} {url}")
        response = self.session.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)

        if 200 <= response.status_code < 300:
            try:
                data = response.json()
            except ValueError:
                raise CloudAPIError("Malformed JSON in response", response.status_code)
            return data if isinstance(data, dict) else {}

        try:
            error_data = response.json()
        except ValueError:
            error_data = None
        message = None
        if isinstance(error_data, dict):
            message = error_data.get("message")
        message = message or getattr(response, "reason", None) or "Unknown error"

        raise CloudAPIError(
            message,
            status_code=response.status_code,
            response_data=error_data if isinstance(error_data, dict) else None,
        )

    def get_resource_by_cname(self, resource_cname: str, folder_id: str) -> Optional[CDNResource]:
        """
        Find a CDN resource by its CNAME, paging through the folder's resources

        Args:
            resource_cname: CNAME of the resource to search for
            folder_id: Folder the resources are listed in

        Returns:
            Matching resource, or None if the folder has no such CNAME
        """
        if not resource_cname or not isinstance(resource_cname, str):
            raise ValueError("resource_cname is required and must be a string")
        if not folder_id or not isinstance(folder_id, str):
            raise ValueError("folder_id is required and must be a string")

        url = f"{self.endpoint}/cdn/v1/resources"
        page_token: Optional[str] = None
        page_count = 0

        while True:
            page_count += 1
            params: Dict[str, Any] = {"folderId": folder_id, "pageSize": LIST_PAGE_SIZE}
            if page_token:
                params["pageToken"] = page_token

            try:
                data = execute_with_retry(
                    lambda: self._request("GET", url, params=params), self.retry_config
                )
            except CloudAPIError as e:
                if e.status_code is None:
                    raise
                raise CloudAPIError(
                    f"Failed to list CDN resources: {e.status_code} - {e.message}. "
                    f"Folder: {folder_id}",
                    status_code=e.status_code,
                    response_data=e.response_data,
                ) from e
            except requests.RequestException as e:
                raise CloudAPIError(f"Failed to list CDN resources: {e}") from e

            resources = data.get("resources") or []
            logger.debug(f"Page {page_count}: {len(resources)} resources in folder {folder_id}")
            for raw in resources:
                if isinstance(raw, dict) and raw.get("cname") == resource_cname:
                    resource = CDNResource.model_validate(raw)
                    logger.info(f"Found CDN resource {resource.id} for CNAME {resource_cname}")
                    return resource

            next_page_token = data.get("nextPageToken")
            if not next_page_token or not isinstance(next_page_token, str):
                logger.info(f"No CDN resource with CNAME {resource_cname} in folder {folder_id}")
                return None
            page_token = next_page_token

    @staticmethod
    def _translate_purge_error(error: CloudAPIError, resource_id: str) -> CloudAPIError:
        status = error.status_code
        if status == 404:
            return ResourceNotFoundError(
                f"CDN Resource not found: {resource_id}. Please verify the resource ID is correct.",
                status_code=status,
                response_data=error.response_data,
            )
        if status == 403:
            return PermissionDeniedError(
                f"Permission denied for resource: {resource_id}. "
                'Ensure the service account has "cdn.editor" role or higher.',
                status_code=status,
                response_data=error.response_data,
            )
        if status == 401:
            return AuthenticationError(
                "Authentication failed. IAM token may be expired or invalid.",
                status_code=status,
                response_data=error.response_data,
            )
        return CloudAPIError(
            f"CDN purge failed: {status} - {error.message}. Resource: {resource_id}",
            status_code=status,
            response_data=error.response_data,
        )

    def purge_cache(self, resource_id: str, paths: Optional[List[str]] = None) -> Operation:
        """
        Purge CDN cache for specific paths, or everything when no paths are given

        The request is retried on transient failures according to ``retry_config``.

        Args:
            resource_id: CDN resource ID
            paths: Paths to purge (empty or None means full purge)

        Returns:
            The purge operation as returned by the API
        """
        if not resource_id or not isinstance(resource_id, str):
            raise ValueError("Resource ID is required and must be a string")

        paths = list(paths or [])
        url = f"{self.endpoint}/cdn/v1/cache/{resource_id}:purge"
        request_body: Dict[str, Any] = {"paths": paths} if paths else {}

        logger.info(f"Purging CDN cache for resource: {resource_id}")
        if paths:
            logger.info(f"Paths to purge ({len(paths)}): {paths}")
        else:
            logger.info("Purging ALL cache (full purge - no specific paths)")

        try:
            data = execute_with_retry(
                lambda: self._request("POST", url, json=request_body), self.retry_config
            )
        except CloudAPIError as e:
            if e.status_code is None:
                raise
            raise self._translate_purge_error(e, resource_id) from e

        if not data.get("id"):
            raise CloudAPIError("Invalid response from CDN purge API: missing operation ID")

        operation = Operation.model_validate(data)
        logger.info(f"Cache purge initiated. Operation ID: {operation.id}")
        return operation

    def get_operation_status(self, operation_id: str) -> Operation:
        """
        Fetch the current state of an operation (single call, no retry)

        Raises:
            CloudAPIError: When the status cannot be obtained
        """
        if not operation_id or not isinstance(operation_id, str):
            raise ValueError("Operation ID is required and must be a string")

        url = f"{self.operation_endpoint}/operations/{operation_id}"

        try:
            data = self._request("GET", url)
        except CloudAPIError as e:
            if e.status_code == 404:
                raise CloudAPIError(f"Operation not found: {operation_id}", status_code=404) from e
            if e.status_code == 401:
                raise AuthenticationError(
                    "Authentication failed when checking operation status", status_code=401
                ) from e
            raise CloudAPIError(
                f"Failed to get operation status: {e.status_code} - {e.message}",
                status_code=e.status_code,
            ) from e
        except requests.RequestException as e:
            raise CloudAPIError(f"Failed to get operation status: {e}") from e

        if not data:
            raise CloudAPIError("Invalid response from Operations API")
        data.setdefault("id", operation_id)
        return Operation.model_validate(data)

    def wait_for_operation(
        self, operation_id: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    ) -> Operation:
        """Poll the operation until it completes; see OperationPoller.wait_for_operation"""
        return self.poller.wait_for_operation(operation_id, timeout_seconds)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "YandexCDNClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
