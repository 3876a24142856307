"""
Polling of Yandex Cloud long-running operations

An operation is PENDING until the provider marks it done, then it is either
DONE or FAILED. The poller adds a local TIMED_OUT outcome when the deadline
passes first. Status checks are deliberately not retried: any error raised
by the status fetcher aborts polling immediately.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from cdn_invalidator.cdn.models import Operation
from cdn_invalidator.exceptions import OperationFailedError, OperationTimeoutError
from cdn_invalidator.utils.core.logger import get_logger

logger = get_logger(__name__, utility="cdn")

POLL_INTERVAL_SECONDS = 5.0
DEFAULT_TIMEOUT_SECONDS = 900

StatusFetcher = Callable[[str], Union[Operation, Dict[str, Any]]]
ProgressCallback = Callable[[float, int], None]


class OperationState(str, Enum):
    """Lifecycle of a polled operation"""
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass
class PollState:
    """Bookkeeping for a single wait_for_operation call"""

    operation_id: str
    start_time: float
    timeout_seconds: float
    poll_interval: float
    last_progress: Optional[float] = None
    polls: int = 0
    state: OperationState = OperationState.PENDING

    @property
    def deadline(self) -> float:
        return self.start_time + self.timeout_seconds

    def elapsed(self, now: float) -> float:
        return now - self.start_time


class OperationPoller:
    """Waits for a long-running operation to reach a terminal state"""

    def __init__(
        self,
        status_fetcher: StatusFetcher,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        """
        Args:
            status_fetcher: Returns the current operation for an id; errors propagate
            poll_interval: Seconds between status checks
            on_progress: Called with (progress, elapsed_seconds) when progress changes
        """
        if poll_interval < 0:
            raise ValueError(f"poll_interval must be >= 0, got {poll_interval}")
        self.status_fetcher = status_fetcher
        self.poll_interval = poll_interval
        self.on_progress = on_progress

    def _fetch(self, operation_id: str) -> Operation:
        raw = self.status_fetcher(operation_id)
        if isinstance(raw, Operation):
            return raw
        return Operation.model_validate(raw)

    def _report_progress(self, state: PollState, operation: Operation, now: float) -> None:
        elapsed_seconds = int(state.elapsed(now))
        progress = operation.progress

        if progress is not None and progress != state.last_progress:
            logger.info(f"Operation in progress: {progress:g}% ({elapsed_seconds}s elapsed)")
            state.last_progress = progress
            if self.on_progress is not None:
                self.on_progress(progress, elapsed_seconds)
        else:
            logger.info(f"Operation in progress... ({elapsed_seconds}s elapsed)")

    def wait_for_operation(
        self, operation_id: str, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    ) -> Operation:
        """
        Poll the operation until it is done, failed, or the timeout expires

        Args:
            operation_id: Identifier returned by the initiating call
            timeout_seconds: Maximum wall-clock time to wait

        Returns:
            The final, successfully completed operation

        Raises:
            OperationTimeoutError: Deadline passed while the operation was pending
            OperationFailedError: Provider reported the operation as failed
        """
        if not operation_id or not isinstance(operation_id, str):
            raise ValueError("Operation ID is required and must be a string")
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")

        state = PollState(
            operation_id=operation_id,
            start_time=time.time(),
            timeout_seconds=timeout_seconds,
            poll_interval=self.poll_interval,
        )

        logger.info(f"Waiting for operation {operation_id} to complete...")
        logger.info(f"Timeout: {timeout_seconds:g} seconds ({timeout_seconds / 60:.1f} minutes)")

        while True:
            now = time.time()
            if now >= state.deadline:
                state.state = OperationState.TIMED_OUT
                raise OperationTimeoutError(operation_id, timeout_seconds)

            operation = self._fetch(operation_id)
            state.polls += 1

            if operation.done:
                if operation.error is not None:
                    state.state = OperationState.FAILED
                    raise OperationFailedError(
                        operation_id,
                        operation.error.code if operation.error.code is not None else "UNKNOWN",
                        operation.error.message or "No error message",
                    )

                state.state = OperationState.DONE
                logger.info(
                    f"Operation completed successfully after {state.polls} status checks"
                )
                return operation

            self._report_progress(state, operation, now)
            time.sleep(state.poll_interval)
