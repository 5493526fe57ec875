"""Retry executor with capped exponential backoff and jitter"""

import logging
import random
import time
from enum import Enum
from typing import Callable, Optional, TypeVar

from bankcli.domain.exceptions import BankAPIError, ErrorKind, TransportFailure
from bankcli.domain.models import RetryPolicy
from bankcli.infrastructure.clients.errors import translate_error
from bankcli.infrastructure.observability.metrics import bank_fetch_failures_counter, bank_retry_counter

T = TypeVar("T")

DEFAULT_RETRY_POLICY = RetryPolicy(max_retries=3, base_delay=1.0, max_delay=10.0)

JITTER_RATIO = 0.25

# 2**64 seconds is past any max_delay; larger exponents would overflow a float
MAX_BACKOFF_EXPONENT = 64

RETRYABLE_TRANSPORT_FAILURES = frozenset(
    {
        TransportFailure.HOST_NOT_FOUND,
        TransportFailure.CONNECTION_REFUSED,
        TransportFailure.CONNECTION_RESET,
        TransportFailure.TIMEOUT,
        TransportFailure.BROKEN_PIPE,
    }
)


class AttemptOutcome(str, Enum):
    """Classification of the most recent failed attempt"""

    RETRYABLE = "retryable"
    TERMINAL = "terminal"


def classify_failure(error: BaseException) -> AttemptOutcome:
    """
    Decide whether a failed remote call is worth retrying.

    Retryable:
    - HTTP 429 (rate limited)
    - HTTP 5xx
    - host not found, connection refused/reset, timeouts, broken pipe

    Everything else (other 4xx, malformed responses, unknown errors) is terminal.
    """
    if not isinstance(error, Exception):
        return AttemptOutcome.TERMINAL

    api_error = error if isinstance(error, BankAPIError) else translate_error(error, "")

    status = api_error.status_code
    if status is not None and (status == 429 or 500 <= status < 600):
        return AttemptOutcome.RETRYABLE
    if api_error.kind == ErrorKind.TRANSPORT and api_error.transport_failure in RETRYABLE_TRANSPORT_FAILURES:
        return AttemptOutcome.RETRYABLE
    return AttemptOutcome.TERMINAL


def is_retryable(error: BaseException) -> bool:
    return classify_failure(error) is AttemptOutcome.RETRYABLE


def calculate_backoff_delay(
    attempt: int,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    uniform: Callable[[float, float], float] = random.uniform,
) -> float:
    """
    Delay in seconds before retrying after attempt `attempt` (0-based).

    delay = min(max_delay, base_delay * 2^attempt * (1 + jitter)),
    jitter uniform in [-0.25, +0.25].
    """
    jitter = uniform(-JITTER_RATIO, JITTER_RATIO)
    exponent = min(attempt, MAX_BACKOFF_EXPONENT)
    return min(policy.max_delay, policy.base_delay * (2 ** exponent) * (1 + jitter))


class RetryExecutor:
    """
    Runs a zero-argument remote operation, retrying transient failures.

    Attempt 0 runs immediately. After a retryable failure with attempts
    remaining the executor sleeps for the backoff delay and tries again.
    Terminal failures and the failure of the final attempt are re-raised
    unchanged so callers can inspect the original error.

    Never wrap transfer initiation in an executor: a transfer that succeeded
    but whose response was lost would be sent twice.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ):
        self.policy = policy or DEFAULT_RETRY_POLICY
        self._sleep = sleep
        self._uniform = uniform

    def execute(self, operation: Callable[[], T], name: str = "remote_call") -> T:
        attempt = 0
        while True:
            try:
                return operation()
            except Exception as e:
                outcome = classify_failure(e)
                if outcome is AttemptOutcome.TERMINAL or attempt >= self.policy.max_retries:
                    bank_fetch_failures_counter.labels(operation=name).inc()
                    logging.error(
                        f"{name} failed: {e}",
                        extra={
                            "operation": name,
                            "attempts": attempt + 1,
                            "outcome": outcome.value,
                        },
                    )
                    raise

                delay = calculate_backoff_delay(attempt, self.policy, self._uniform)
                bank_retry_counter.labels(operation=name).inc()
                logging.warning(
                    f"{name} failed, retrying in {delay:.2f}s",
                    extra={
                        "operation": name,
                        "attempt": attempt + 1,
                        "delay_seconds": round(delay, 3),
                        "status_code": getattr(e, "status_code", None),
                    },
                )
                self._sleep(delay)
                attempt += 1
