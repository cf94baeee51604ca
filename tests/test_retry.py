"""
Tests for the retry policy and error classification used around AWS calls.
"""

import threading
import time
import unittest
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError, ConnectTimeoutError

from tfdrift.drift_detector.errors import DeadlineExceededError, OperationCancelledError
from tfdrift.drift_detector.fetchers.retry import (
    RetryPolicy,
    is_retryable_error,
    retry_with_backoff,
)

FAST = RetryPolicy(max_retries=3, base_delay=0.001, max_delay=0.005)


def client_error(code: str, message: str = "") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": message}}, "DescribeInstances")


class TestIsRetryableError(unittest.TestCase):
    """Classification of failures."""

    def test_none_is_not_retryable(self) -> None:
        self.assertFalse(is_retryable_error(None))

    def test_timeouts_are_retryable(self) -> None:
        self.assertTrue(is_retryable_error(DeadlineExceededError("deadline exceeded")))
        self.assertTrue(is_retryable_error(TimeoutError()))
        self.assertTrue(is_retryable_error(ConnectTimeoutError(endpoint_url="https://ec2.amazonaws.com")))

    def test_client_errors_are_terminal(self) -> None:
        for code in ("InvalidInstanceID.NotFound", "InvalidInstanceID.Malformed", "InvalidParameterValue", "UnauthorizedOperation"):
            self.assertFalse(is_retryable_error(client_error(code)), code)

    def test_transient_errors_are_retryable(self) -> None:
        self.assertTrue(is_retryable_error(client_error("Throttling", "Rate exceeded")))
        self.assertTrue(is_retryable_error(client_error("ServiceUnavailable")))
        self.assertTrue(is_retryable_error(ConnectionResetError("connection reset by peer")))


class TestRetryWithBackoff(unittest.TestCase):
    """Attempt counting, backoff and cancellation."""

    def test_success_after_retryable_failures(self) -> None:
        operation = MagicMock(side_effect=[client_error("Throttling"), client_error("Throttling"), "ok"])
        self.assertEqual(retry_with_backoff(operation, FAST), "ok")
        self.assertEqual(operation.call_count, 3)

    def test_terminal_error_is_not_retried(self) -> None:
        error = client_error("InvalidInstanceID.NotFound")
        operation = MagicMock(side_effect=error)
        with self.assertRaises(ClientError) as context:
            retry_with_backoff(operation, FAST)
        self.assertIs(context.exception, error)
        self.assertEqual(operation.call_count, 1)

    def test_exhaustion_reraises_last_error(self) -> None:
        errors = [client_error("Throttling", str(i)) for i in range(4)]
        operation = MagicMock(side_effect=errors)
        with self.assertRaises(ClientError) as context:
            retry_with_backoff(operation, FAST)
        self.assertIs(context.exception, errors[-1])
        self.assertEqual(operation.call_count, 4)

    def test_zero_retries_means_single_attempt(self) -> None:
        operation = MagicMock(side_effect=client_error("Throttling"))
        with self.assertRaises(ClientError):
            retry_with_backoff(operation, RetryPolicy(max_retries=0))
        self.assertEqual(operation.call_count, 1)

    def test_delays_grow_exponentially_and_are_capped(self) -> None:
        policy = RetryPolicy()
        self.assertEqual([policy.delay_for(n) for n in range(3)], [0.1, 0.2, 0.4])
        self.assertEqual(policy.delay_for(10), 5.0)

    @patch("tfdrift.drift_detector.fetchers.retry.time.sleep")
    def test_backoff_waits_between_attempts(self, mock_sleep: MagicMock) -> None:
        operation = MagicMock(side_effect=[client_error("Throttling"), client_error("Throttling"), "ok"])
        retry_with_backoff(operation, RetryPolicy())
        self.assertEqual([c.args[0] for c in mock_sleep.call_args_list], [0.1, 0.2])

    def test_cancelled_before_first_attempt(self) -> None:
        cancel = threading.Event()
        cancel.set()
        operation = MagicMock(return_value="ok")
        with self.assertRaises(OperationCancelledError):
            retry_with_backoff(operation, FAST, cancel_event=cancel)
        operation.assert_not_called()

    def test_cancelled_during_backoff(self) -> None:
        cancel = threading.Event()

        def fail_and_cancel():
            cancel.set()
            raise client_error("Throttling")

        operation = MagicMock(side_effect=fail_and_cancel)
        with self.assertRaises(OperationCancelledError):
            retry_with_backoff(operation, RetryPolicy(base_delay=1.0), cancel_event=cancel)
        self.assertEqual(operation.call_count, 1)

    def test_expired_deadline(self) -> None:
        operation = MagicMock(return_value="ok")
        with self.assertRaises(DeadlineExceededError):
            retry_with_backoff(operation, FAST, deadline=time.monotonic() - 1)
        operation.assert_not_called()

    def test_deadline_stops_backoff(self) -> None:
        operation = MagicMock(side_effect=client_error("Throttling"))
        started = time.monotonic()
        with self.assertRaises(DeadlineExceededError):
            retry_with_backoff(operation, RetryPolicy(base_delay=5.0), deadline=started + 0.05)
        self.assertLess(time.monotonic() - started, 2.0)
        self.assertEqual(operation.call_count, 1)

    def test_slow_attempt_is_cut_at_deadline(self) -> None:
        def slow():
            time.sleep(1.0)
            return "ok"

        started = time.monotonic()
        with self.assertRaises(DeadlineExceededError):
            retry_with_backoff(slow, RetryPolicy(request_timeout=0.2), deadline=started + 0.1)
        self.assertLess(time.monotonic() - started, 0.8)

    def test_slow_attempt_is_cut_at_request_timeout_and_retried(self) -> None:
        calls = []

        def slow_then_fast():
            calls.append(1)
            if len(calls) == 1:
                time.sleep(1.0)
            return "ok"

        started = time.monotonic()
        policy = RetryPolicy(max_retries=1, base_delay=0.001, request_timeout=0.1)
        self.assertEqual(retry_with_backoff(slow_then_fast, policy), "ok")
        self.assertEqual(len(calls), 2)
        self.assertLess(time.monotonic() - started, 0.8)

    def test_timed_out_last_attempt_raises_deadline_error(self) -> None:
        operation = MagicMock(side_effect=lambda: time.sleep(0.5))
        with self.assertRaises(DeadlineExceededError) as context:
            retry_with_backoff(operation, RetryPolicy(max_retries=0, request_timeout=0.05))
        self.assertIn("timed out", str(context.exception))


if __name__ == "__main__":
    unittest.main()
