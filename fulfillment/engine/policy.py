"""
Retry and timeout policy evaluation.

``decide`` is a pure function: given the policy, the number of the attempt
that just failed, the failure kind and the time spent on the invocation so
far, it says whether to retry and after how long.
"""

from datetime import timedelta
from typing import Optional

from fulfillment.domain import ErrorKind, RetryDecision, RetryPolicy

TIMEOUT_ERROR_KIND = ErrorKind.TIMEOUT.value


def backoff_interval(policy: RetryPolicy, attempt: int) -> timedelta:
    """Delay before the attempt following ``attempt``.

    ``initial_interval * backoff_coefficient ** (attempt - 1)``, capped at
    ``maximum_interval``.
    """
    cap = policy.maximum_interval.total_seconds()
    try:
        seconds = policy.initial_interval.total_seconds() * (
            policy.backoff_coefficient ** (attempt - 1)
        )
    except OverflowError:
        seconds = cap
    return timedelta(seconds=min(seconds, cap))


def decide(
    policy: RetryPolicy,
    attempt: int,
    error_kind: str,
    elapsed: timedelta = timedelta(0),
    schedule_to_close_timeout: Optional[timedelta] = None,
) -> RetryDecision:
    if error_kind in policy.non_retryable_error_kinds:
        return RetryDecision.fail(f"{error_kind} is not retryable")
    if attempt >= policy.maximum_attempts:
        return RetryDecision.fail(
            f"Maximum attempts ({policy.maximum_attempts}) reached"
        )
    after = backoff_interval(policy, attempt)
    if (
        schedule_to_close_timeout is not None
        and elapsed + after >= schedule_to_close_timeout
    ):
        return RetryDecision.fail("Schedule-to-close timeout exceeded")
    return RetryDecision.retry(after)
