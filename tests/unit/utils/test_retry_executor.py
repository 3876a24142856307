import asyncio
import errno
import inspect
from unittest.mock import AsyncMock, Mock

import pytest

from cdn_invalidator.exceptions import CloudAPIError
from cdn_invalidator.utils.core.retry import (
    DEFAULT_RETRY_CONFIG,
    RetryAttempt,
    RetryConfig,
    async_execute_with_retry,
    backoff_delays,
    execute_with_retry,
    next_delay,
    retry,
)


def throttled(n=1):
    return CloudAPIError(f"Too many requests #{n}", status_code=429)


@pytest.mark.unit
def test_default_config_values():
    assert DEFAULT_RETRY_CONFIG.max_attempts == 12
    assert DEFAULT_RETRY_CONFIG.initial_delay == 10.0
    assert DEFAULT_RETRY_CONFIG.max_delay == 120.0
    assert DEFAULT_RETRY_CONFIG.factor == 1.5
    assert DEFAULT_RETRY_CONFIG.on_retry is None


@pytest.mark.unit
@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"max_attempts": 2.5},
        {"initial_delay": -1.0},
        {"initial_delay": 10.0, "max_delay": 5.0},
        {"factor": 0.5},
    ],
)
def test_invalid_config_rejected(kwargs):
    with pytest.raises(ValueError):
        RetryConfig(**kwargs)


@pytest.mark.unit
def test_backoff_sequence_and_clamp():
    """10, 15, 22.5, 33.75 ... clamped at 120"""
    delays = list(backoff_delays(RetryConfig()))

    assert delays[:4] == [10.0, 15.0, 22.5, 33.75]
    assert len(delays) == 11
    # 10 * 1.5**6 = 113.9 < 120, the next value would be 170.9 and is clamped
    assert delays[6] == pytest.approx(113.90625)
    assert delays[7:] == [120.0, 120.0, 120.0, 120.0]
    assert all(later >= earlier for earlier, later in zip(delays, delays[1:]))


@pytest.mark.unit
def test_next_delay_never_exceeds_max():
    config = RetryConfig(initial_delay=1.0, max_delay=3.0, factor=2.0)
    assert next_delay(1.0, config) == 2.0
    assert next_delay(2.0, config) == 3.0
    assert next_delay(3.0, config) == 3.0


@pytest.mark.unit
def test_success_on_first_attempt_does_not_sleep(mocker):
    sleep = mocker.patch("time.sleep")
    operation = Mock(return_value="success")

    assert execute_with_retry(operation) == "success"
    operation.assert_called_once_with()
    sleep.assert_not_called()


@pytest.mark.unit
def test_success_after_retryable_failures(frozen_time):
    clock = frozen_time(start=0.0)
    on_retry = Mock()
    result = {"id": "op1"}
    operation = Mock(side_effect=[throttled(1), throttled(2), throttled(3), result])

    out = execute_with_retry(operation, RetryConfig(on_retry=on_retry))

    assert out is result
    assert operation.call_count == 4
    assert on_retry.call_count == 3
    records = [c.args[0] for c in on_retry.call_args_list]
    assert [r.attempt for r in records] == [1, 2, 3]
    assert [r.delay for r in records] == [10.0, 15.0, 22.5]
    assert all(isinstance(r, RetryAttempt) and r.max_attempts == 12 for r in records)
    assert clock.sleeps == [10.0, 15.0, 22.5]


@pytest.mark.unit
def test_exhaustion_reraises_last_error_unchanged(frozen_time):
    clock = frozen_time()
    errors = [throttled(i) for i in range(1, 4)]
    operation = Mock(side_effect=errors)
    on_retry = Mock()

    with pytest.raises(CloudAPIError) as exc:
        execute_with_retry(operation, RetryConfig(max_attempts=3, on_retry=on_retry))

    assert exc.value is errors[-1]
    assert operation.call_count == 3
    # observer never sees the terminal failure
    assert on_retry.call_count == 2
    assert len(clock.sleeps) == 2


@pytest.mark.unit
def test_non_retryable_error_propagates_immediately(mocker):
    sleep = mocker.patch("time.sleep")
    error = CloudAPIError("Not found", status_code=404)
    operation = Mock(side_effect=error)
    on_retry = Mock()

    with pytest.raises(CloudAPIError) as exc:
        execute_with_retry(operation, RetryConfig(max_attempts=12, on_retry=on_retry))

    assert exc.value is error
    operation.assert_called_once()
    on_retry.assert_not_called()
    sleep.assert_not_called()


@pytest.mark.unit
def test_single_attempt_config_never_retries():
    operation = Mock(side_effect=throttled())
    with pytest.raises(CloudAPIError):
        execute_with_retry(operation, RetryConfig(max_attempts=1))
    operation.assert_called_once()


@pytest.mark.unit
def test_jitter_changes_slept_delay_only(frozen_time):
    clock = frozen_time()
    on_retry = Mock()
    config = RetryConfig(max_attempts=3, on_retry=on_retry, jitter=lambda d: d / 2)
    operation = Mock(side_effect=[throttled(), throttled(), "ok"])

    assert execute_with_retry(operation, config) == "ok"
    assert clock.sleeps == [5.0, 7.5]
    assert [c.args[0].delay for c in on_retry.call_args_list] == [5.0, 7.5]


@pytest.mark.unit
def test_retry_decorator_sync(frozen_time):
    frozen_time()
    calls = []

    @retry(RetryConfig(max_attempts=3, initial_delay=1.0, max_delay=2.0))
    def flaky(value):
        calls.append(value)
        if len(calls) < 2:
            raise ConnectionResetError(errno.ECONNRESET, "Connection reset by peer")
        return value * 2

    assert flaky(21) == 42
    assert calls == [21, 21]
    assert flaky.__name__ == "flaky"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_async_executor_retries_and_returns(mocker):
    sleep = mocker.patch("asyncio.sleep", new_callable=AsyncMock)
    on_retry = Mock()
    operation = AsyncMock(side_effect=[throttled(), "done"])

    result = await async_execute_with_retry(operation, RetryConfig(on_retry=on_retry))

    assert result == "done"
    assert operation.await_count == 2
    sleep.assert_awaited_once_with(10.0)
    assert on_retry.call_args.args[0].attempt == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_async_executor_exhaustion(mocker):
    mocker.patch("asyncio.sleep", new_callable=AsyncMock)
    error = throttled()
    operation = AsyncMock(side_effect=error)

    with pytest.raises(CloudAPIError) as exc:
        await async_execute_with_retry(operation, RetryConfig(max_attempts=4))

    assert exc.value is error
    assert operation.await_count == 4


@pytest.mark.unit
@pytest.mark.asyncio
async def test_retry_decorator_async(mocker):
    mocker.patch("asyncio.sleep", new_callable=AsyncMock)
    attempts = {"n": 0}

    @retry(RetryConfig(max_attempts=2))
    async def fetch():
        attempts["n"] += 1
        if attempts["n"] == 1:
            raise TimeoutError("timed out")
        await asyncio.sleep(0)
        return "payload"

    assert inspect.iscoroutinefunction(fetch)
    assert await fetch() == "payload"
    assert attempts["n"] == 2
