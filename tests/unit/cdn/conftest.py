import pytest

from cdn_invalidator.cdn.client import YandexCDNClient


@pytest.fixture
def cdn_client():
    """Return a YandexCDNClient with a fast retry policy for tests."""
    from cdn_invalidator.cdn.client import log_retry_attempt
    from cdn_invalidator.utils.core.retry import RetryConfig

    client = YandexCDNClient(
        "t1.TESTTOKEN",
        retry_config=RetryConfig(
            max_attempts=3, initial_delay=0.01, max_delay=0.02, on_retry=log_retry_attempt
        ),
    )
    yield client
    client.close()


@pytest.fixture
def patch_session(mocker):
    """Patch the client's session.request with a list of canned responses."""

    def _patch(client, responses):
        return mocker.patch.object(client.session, "request", side_effect=list(responses))

    return _patch
