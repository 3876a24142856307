#!/usr/bin/env python3
"""
CDN Invalidator entry point

Runs the purge workflow as a single CI step:

1. Read and validate inputs
2. Authenticate with Yandex Cloud
3. Resolve the CDN resource (directly by id, or by CNAME within a folder)
4. Purge the cache (retried on transient failures)
5. Optionally wait for the purge operation to finish

Usage:
    cdn-invalidator
    python -m cdn_invalidator
"""

import sys
import traceback
from typing import Optional

from cdn_invalidator.auth.iam import get_auth_token
from cdn_invalidator.cdn.client import YandexCDNClient
from cdn_invalidator.config import ActionConfig
from cdn_invalidator.exceptions import CDNInvalidatorError, ResourceNotFoundError
from cdn_invalidator.utils.core.actions import annotate_error, annotate_warning, group, set_output
from cdn_invalidator.utils.core.logger import get_logger

logger = get_logger(__name__, utility="general")


def _purge(config: ActionConfig, client: YandexCDNClient) -> int:
    resource_id = config.resource_id

    if config.resource_cname:
        resource = client.get_resource_by_cname(config.resource_cname, config.folder_id)
        if resource is None:
            if config.skip_not_found:
                annotate_warning("Resource not found, skipping...")
                return 0
            raise ResourceNotFoundError(f"Resource not found: {config.resource_cname}")
        resource_id = resource.id

    set_output("resource-id", resource_id)

    operation = client.purge_cache(resource_id, config.paths)
    set_output("operation-id", operation.id)

    if config.wait:
        client.wait_for_operation(operation.id, config.timeout)
    else:
        logger.info(f"Not waiting for completion. Track operation {operation.id} if needed.")

    return 0


def run(config: Optional[ActionConfig] = None) -> int:
    """
    Execute the invalidation workflow

    Args:
        config: Pre-built configuration (read from the environment if None)

    Returns:
        Process exit status: 0 on success, 1 on failure
    """
    logger.info("=== Yandex CDN Invalidator Started ===")

    try:
        config = config or ActionConfig.from_env()
        config.validate()

        logger.info("Configuration:")
        for line in config.describe():
            logger.info(line)

        with group("Authentication"):
            logger.info("Authenticating with Yandex Cloud...")
            token = get_auth_token(config.service_account_key, config.iam_token)
            logger.info("Authentication successful")

        with YandexCDNClient(token, endpoint=config.endpoint) as client:
            status = _purge(config, client)

    except CDNInvalidatorError as e:
        logger.debug(traceback.format_exc())
        annotate_error(f"Action failed: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {type(e).__name__}: {e}")
        annotate_error(f"Action failed: {e}")
        return 1

    logger.info("=== Yandex CDN Invalidator Completed Successfully ===")
    return status


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
