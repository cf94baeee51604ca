"""
Retry Policy Module.

This module contains the exponential backoff used around EC2 describe calls and
the classification of errors into retryable and terminal ones.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

from botocore.exceptions import ConnectTimeoutError, ReadTimeoutError

from ...utils import setup_logging
from ..errors import DeadlineExceededError, OperationCancelledError

logger = setup_logging()

T = TypeVar("T")

# AWS API error patterns
ERROR_PATTERN_INVALID_INSTANCE_ID = "InvalidInstanceID"
ERROR_PATTERN_INSTANCE_NOT_FOUND = "InvalidInstanceID.NotFound"
ERROR_PATTERN_INVALID_PARAMETER = "InvalidParameter"
ERROR_PATTERN_UNAUTHORIZED_OPERATION = "UnauthorizedOperation"

NON_RETRYABLE_PATTERNS = (
    ERROR_PATTERN_INVALID_INSTANCE_ID,
    ERROR_PATTERN_INVALID_PARAMETER,
    ERROR_PATTERN_UNAUTHORIZED_OPERATION,
    ERROR_PATTERN_INSTANCE_NOT_FOUND,
)

TIMEOUT_ERRORS = (DeadlineExceededError, TimeoutError, ConnectTimeoutError, ReadTimeoutError)


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff settings; delays grow as base_delay * 2**attempt up to max_delay."""

    max_retries: int = 3
    base_delay: float = 0.1
    max_delay: float = 5.0
    request_timeout: float = 10.0

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (2 ** attempt), self.max_delay)


def is_retryable_error(error: Optional[BaseException]) -> bool:
    """
    Decides whether a failed call may be retried.

    Timeouts are retryable. Client errors such as invalid or unknown instance
    ids, invalid parameters and missing permissions are terminal. Everything
    else (throttling, service unavailable, internal errors, connection resets)
    is retryable.
    """
    if error is None:
        return False
    if isinstance(error, TIMEOUT_ERRORS):
        return True

    message = str(error)
    return not any(pattern in message for pattern in NON_RETRYABLE_PATTERNS)


def _check_not_cancelled(
    cancel_event: Optional[threading.Event], deadline: Optional[float]
) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise OperationCancelledError("operation cancelled", operation="retry_with_backoff")
    if deadline is not None and time.monotonic() >= deadline:
        raise DeadlineExceededError("deadline exceeded", operation="retry_with_backoff")


def _wait(
    delay: float, cancel_event: Optional[threading.Event], deadline: Optional[float]
) -> None:
    if deadline is not None:
        delay = min(delay, max(0.0, deadline - time.monotonic()))
    if cancel_event is not None:
        cancel_event.wait(delay)
    else:
        time.sleep(delay)
    _check_not_cancelled(cancel_event, deadline)


def _run_attempt(
    operation: Callable[[], T], policy: RetryPolicy, deadline: Optional[float]
) -> T:
    timeout = policy.request_timeout
    if deadline is not None:
        timeout = min(timeout, max(0.0, deadline - time.monotonic()))

    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="attempt")
    future = executor.submit(operation)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError:
        # The abandoned call keeps running on its thread; its result is discarded
        future.cancel()
        raise DeadlineExceededError(
            f"attempt timed out after {timeout:.2f}s", operation="retry_with_backoff"
        )
    finally:
        executor.shutdown(wait=False)


def retry_with_backoff(
    operation: Callable[[], T],
    policy: RetryPolicy = RetryPolicy(),
    cancel_event: Optional[threading.Event] = None,
    deadline: Optional[float] = None,
) -> T:
    """
    Runs operation, retrying retryable failures with exponential backoff.

    Each attempt is bounded by min(policy.request_timeout, time left before the
    deadline); an attempt that overruns it fails with DeadlineExceededError,
    which is retryable while the deadline has not passed.

    Args:
        operation: Zero-argument callable performing one attempt
        policy: Retry counts, delays and the per-attempt timeout
        cancel_event: Set by the caller to abandon the operation
        deadline: Absolute time.monotonic() value after which no attempt starts

    Returns:
        The operation's return value

    Raises:
        OperationCancelledError: If cancel_event is set before or between attempts
        DeadlineExceededError: If the deadline passes, or the last attempt timed out
        Exception: The last error observed, unchanged, once retries are exhausted
            or as soon as a terminal error is seen
    """
    attempt = 0
    while True:
        _check_not_cancelled(cancel_event, deadline)

        try:
            return _run_attempt(operation, policy, deadline)
        except Exception as e:
            if attempt >= policy.max_retries or not is_retryable_error(e):
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                f"Retrying operation after {delay:.2f}s "
                f"(attempt {attempt + 1}/{policy.max_retries}): {e}"
            )

        _wait(delay, cancel_event, deadline)
        attempt += 1
