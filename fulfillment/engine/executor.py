"""
Activity executor: runs one activity invocation under its options.

Each attempt is bounded by ``start_to_close_timeout``; a failed attempt is
handed to the policy evaluator and, on retry, the caller is suspended for
the backoff interval with a cooperative timer so other runs keep
executing. Terminal failures are returned as ``ActivityFailed`` results.
"""

import asyncio
import logging
import time
from datetime import timedelta
from typing import Any, Awaitable, Callable, Optional

from fulfillment.domain import ActivityOptions, ErrorKind, Result
from fulfillment.engine.policy import TIMEOUT_ERROR_KIND, decide
from fulfillment.engine.registry import ActivityExecutionError, ActivityRegistry

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
# Awaited before each attempt with the attempt number; returning False
# stops the invocation before that attempt starts.
AttemptHook = Callable[[int], Awaitable[bool]]


class ActivityExecutor:
    def __init__(
        self,
        registry: ActivityRegistry,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self._sleep = sleep
        self._clock = clock

    async def execute(
        self,
        name: str,
        input: Any,
        options: ActivityOptions,
        on_attempt: Optional[AttemptHook] = None,
        first_attempt: int = 1,
    ) -> Result[Any]:
        started = self._clock()
        attempt = first_attempt
        last_error_kind: Optional[str] = None

        while True:
            if on_attempt is not None and not await on_attempt(attempt):
                logger.info(
                    "Activity interrupted before attempt",
                    extra={"activity": name, "attempt": attempt},
                )
                return Result.failure(
                    ErrorKind.INVALID_STATE,
                    f"{name} interrupted before attempt {attempt}",
                    attempts=attempt - 1,
                    last_error_kind=last_error_kind,
                )

            logger.debug(
                "Starting activity attempt",
                extra={"activity": name, "attempt": attempt},
            )
            try:
                output = await asyncio.wait_for(
                    self.registry.invoke(name, input),
                    timeout=options.start_to_close_timeout.total_seconds(),
                )
                logger.debug(
                    "Activity attempt succeeded",
                    extra={"activity": name, "attempt": attempt},
                )
                return Result.success(output)
            except asyncio.TimeoutError:
                last_error_kind = TIMEOUT_ERROR_KIND
                message = (
                    f"{name} exceeded start-to-close timeout of "
                    f"{options.start_to_close_timeout}"
                )
            except ActivityExecutionError as e:
                last_error_kind = e.kind
                message = str(e)

            elapsed = timedelta(seconds=self._clock() - started)
            decision = decide(
                options.retry_policy,
                attempt,
                last_error_kind,
                elapsed,
                options.schedule_to_close_timeout,
            )
            if not decision.should_retry or decision.after is None:
                logger.warning(
                    "Activity failed permanently",
                    extra={
                        "activity": name,
                        "attempt": attempt,
                        "error_kind": last_error_kind,
                        "reason": decision.reason,
                    },
                )
                return Result.failure(
                    ErrorKind.ACTIVITY_FAILED,
                    f"{message} ({decision.reason})",
                    attempts=attempt,
                    last_error_kind=last_error_kind,
                )

            logger.info(
                "Activity attempt failed, retrying",
                extra={
                    "activity": name,
                    "attempt": attempt,
                    "error_kind": last_error_kind,
                    "retry_in_seconds": decision.after.total_seconds(),
                },
            )
            await self._sleep(decision.after.total_seconds())
            attempt += 1
