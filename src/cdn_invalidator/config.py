"""
Configuration settings for the CDN invalidator step
"""

import os
import re
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

from cdn_invalidator.cdn.client import DEFAULT_CDN_ENDPOINT
from cdn_invalidator.cdn.operations import DEFAULT_TIMEOUT_SECONDS
from cdn_invalidator.exceptions import ConfigurationError
from cdn_invalidator.utils.core.actions import annotate_warning, get_input

load_dotenv()

_TRUE_VALUES = {"true", "1", "yes", "on"}
_FALSE_VALUES = {"false", "0", "no", "off"}
_RESOURCE_ID_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")


def read_input(name: str, default: str = "") -> str:
    """Read ``INPUT_<NAME>`` first, then ``CDN_<NAME>`` with dashes as underscores"""
    value = get_input(name)
    if value:
        return value
    env_name = "CDN_" + name.replace("-", "_").upper()
    return os.getenv(env_name, default).strip()


def parse_bool(value: str, name: str, default: bool) -> bool:
    text = (value or "").strip().lower()
    if not text:
        return default
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigurationError(f'Invalid boolean value for {name}: "{value}". Use "true" or "false".')


def parse_timeout(value: str) -> int:
    text = (value or "").strip()
    if not text:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = int(text)
    except ValueError:
        timeout = 0
    if timeout <= 0:
        raise ConfigurationError(
            f'Invalid timeout value: "{value}". Must be a positive integer.'
        )
    return timeout


def parse_paths(paths_input: Optional[str]) -> List[str]:
    """
    Parse a comma-separated list of paths

    Blank entries are dropped and every path is made absolute.
    An empty result means a full purge.
    """
    if not paths_input or not paths_input.strip():
        return []

    paths = [path.strip() for path in paths_input.split(",")]
    return [path if path.startswith("/") else f"/{path}" for path in paths if path]


def validate_resource_id(resource_id: str) -> None:
    """Reject an empty resource id; warn about unusual characters"""
    if not resource_id or not resource_id.strip():
        raise ConfigurationError("resource-id cannot be empty")

    if not _RESOURCE_ID_PATTERN.match(resource_id):
        annotate_warning(
            f'Resource ID "{resource_id}" contains non-alphanumeric characters. '
            "This may be invalid. Typical format: bc8abcdef123"
        )


@dataclass
class ActionConfig:
    """Inputs of the CDN invalidator step"""

    resource_id: str = ""
    resource_cname: str = ""
    folder_id: str = ""
    skip_not_found: bool = False
    paths: List[str] = field(default_factory=list)
    service_account_key: str = field(default="", repr=False)
    iam_token: str = field(default="", repr=False)
    wait: bool = True
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    endpoint: str = DEFAULT_CDN_ENDPOINT

    @classmethod
    def from_env(cls) -> "ActionConfig":
        """Create configuration from action inputs / environment variables"""
        return cls(
            resource_id=read_input("resource-id"),
            resource_cname=read_input("resource-cname"),
            folder_id=read_input("folder-id"),
            skip_not_found=parse_bool(read_input("skip-not-found"), "skip-not-found", False),
            paths=parse_paths(read_input("paths")),
            service_account_key=read_input("service-account-key"),
            iam_token=read_input("iam-token"),
            wait=parse_bool(read_input("wait"), "wait", True),
            timeout=parse_timeout(read_input("timeout")),
            endpoint=read_input("endpoint") or DEFAULT_CDN_ENDPOINT,
        )

    @property
    def auth_method(self) -> str:
        return "IAM Token" if self.iam_token else "Service Account Key"

    def validate(self) -> None:
        """
        Check the combination of inputs

        Raises:
            ConfigurationError: On a missing or conflicting input
        """
        if not self.resource_id and not self.resource_cname:
            raise ConfigurationError("Either resource-id or resource-cname must be provided")

        if self.resource_id and self.resource_cname:
            raise ConfigurationError("Only one of resource-id or resource-cname must be provided")

        if self.resource_id:
            validate_resource_id(self.resource_id)

        if self.resource_cname and not self.folder_id:
            raise ConfigurationError("folder-id must be provided when resource-cname is provided")

        if isinstance(self.timeout, bool) or not isinstance(self.timeout, int) or self.timeout <= 0:
            raise ConfigurationError(
                f'Invalid timeout value: "{self.timeout}". Must be a positive integer.'
            )

        if not self.iam_token and not self.service_account_key:
            raise ConfigurationError(
                "Either service-account-key or iam-token must be provided. "
                "See action documentation for authentication setup."
            )

    def describe(self) -> List[str]:
        """Configuration summary safe for logs (no credentials)"""
        return [
            f"  Resource ID: {self.resource_id or '-'}",
            f"  Resource CNAME: {self.resource_cname or '-'}",
            f"  Folder ID: {self.folder_id or '-'}",
            f"  Skip not found: {self.skip_not_found}",
            f"  Paths: {self.paths if self.paths else 'ALL (full purge)'}",
            f"  Wait for completion: {self.wait}",
            f"  Timeout: {self.timeout}s ({self.timeout / 60:.1f} minutes)",
            f"  Endpoint: {self.endpoint}",
            f"  Auth method: {self.auth_method}",
        ]
