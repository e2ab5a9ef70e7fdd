"""
Workflow engine: drives WorkflowRuns through their definitions.

A run moves ``Created -> Running -> Completed | Failed | Terminated``.
Steps execute strictly in definition order; step ``i + 1`` starts only
after step ``i`` is recorded as Succeeded. The run record is persisted
before every attempt and after every step transition, which is what lets
``resume`` pick a Running run up at its first unfinished step after the
process that was driving it died.

Concurrency model:
- Every run is driven by its own asyncio task; runs never wait on each
  other.
- Mutations of one run happen under a per-run lock and always start from a
  fresh read of the repository, so ``terminate`` and the driving task never
  overwrite each other's changes.
- A Running run is owned by the engine whose id is in ``claimed_by``. The
  claim is refreshed on every persist; claims older than ``claim_timeout``
  can be taken over by another engine.
"""

import asyncio
import contextlib
import functools
import logging
import os
import socket
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Dict, List, Optional, Tuple

from fulfillment.definitions import DEFINITIONS, WorkflowDefinition
from fulfillment.domain import (
    ActivityRecord,
    ActivityStatus,
    ErrorKind,
    Result,
    RunFilter,
    RunStatus,
    WorkflowRun,
    WorkflowType,
    utcnow,
)
from fulfillment.engine.executor import ActivityExecutor
from fulfillment.repositories import WorkflowRunRepository
from fulfillment.validation import ensure_workflow_run_repository

logger = logging.getLogger(__name__)

DEFAULT_CLAIM_TIMEOUT = timedelta(seconds=120)


def default_owner() -> str:
    return f"{socket.gethostname()}-{os.getpid()}"


class WorkflowEngine:
    """Local implementation of the WorkflowGateway protocol."""

    def __init__(
        self,
        repository: WorkflowRunRepository,
        executor: ActivityExecutor,
        definitions: Optional[Dict[WorkflowType, WorkflowDefinition]] = None,
        owner: Optional[str] = None,
        dispatch: bool = True,
        claim_timeout: timedelta = DEFAULT_CLAIM_TIMEOUT,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        """Initialize the engine.

        Args:
            repository: Where run records are persisted
            executor: Executes single activity invocations with retries
            definitions: Workflow types this engine can drive
            owner: Claim owner id, defaults to ``<hostname>-<pid>``
            dispatch: Drive started runs in this process. When False,
                ``start`` only records the run and a worker polling
                ``resume`` drives it.
            claim_timeout: Age after which another owner's claim is stale
            clock: Source of timestamps
        """
        self.repository = ensure_workflow_run_repository(repository)
        self.executor = executor
        self.definitions = dict(definitions or DEFINITIONS)
        self.owner = owner or default_owner()
        self.dispatch = dispatch
        self.claim_timeout = claim_timeout
        self._clock = clock
        # run_id -> (lock, number of holders and waiters)
        self._locks: Dict[str, Tuple[asyncio.Lock, int]] = {}
        self._tasks: Dict[str, "asyncio.Task[None]"] = {}
        self._stopping = False

    # Gateway operations

    async def start(
        self,
        run_id: str,
        workflow_type: WorkflowType,
        input: Optional[str] = None,
    ) -> Result[WorkflowRun]:
        if not run_id or not run_id.strip():
            return Result.failure(
                ErrorKind.INVALID_ARGUMENT, "Workflow ID must not be empty"
            )
        try:
            workflow_type = WorkflowType(workflow_type)
        except ValueError:
            return Result.failure(
                ErrorKind.INVALID_ARGUMENT,
                f"Unknown workflow type: {workflow_type}",
            )
        definition = self.definitions.get(workflow_type)
        if definition is None:
            return Result.failure(
                ErrorKind.INVALID_ARGUMENT,
                f"Workflow type {workflow_type.value} is not served by "
                "this engine",
            )
        if self._stopping:
            return Result.failure(
                ErrorKind.ENGINE_UNAVAILABLE, "Engine is shutting down"
            )

        try:
            async with self._locked(run_id):
                existing = await self.repository.get(run_id)
                if existing is not None and not existing.is_terminal:
                    logger.info(
                        "Rejected duplicate workflow start",
                        extra={
                            "run_id": run_id,
                            "existing_status": existing.status.value,
                        },
                    )
                    return Result.failure(
                        ErrorKind.DUPLICATE_RUN_ID,
                        f"Workflow {run_id} is already running",
                    )
                if existing is not None:
                    await self.repository.archive(existing)

                now = self._clock()
                run = WorkflowRun(
                    run_id=run_id,
                    workflow_type=workflow_type,
                    task_queue=definition.task_queue,
                    input=run_id if input is None else input,
                    created_at=now,
                    updated_at=now,
                )
                run.status = RunStatus.RUNNING
                if self.dispatch:
                    run.claimed_by = self.owner
                    run.claimed_at = now
                await self.repository.save(run)
        except Exception as e:
            logger.error(
                "Failed to record workflow start",
                extra={"run_id": run_id, "error": str(e)},
                exc_info=True,
            )
            return Result.failure(
                ErrorKind.ENGINE_UNAVAILABLE,
                f"Run store unavailable: {e}",
            )

        logger.info(
            "Workflow started",
            extra={
                "run_id": run_id,
                "run_uid": run.run_uid,
                "workflow_type": workflow_type.value,
                "task_queue": definition.task_queue,
            },
        )
        if self.dispatch:
            self._spawn(run.run_id, run.run_uid)
        return Result.success(run.model_copy(deep=True))

    async def get(self, run_id: str) -> Result[WorkflowRun]:
        try:
            run = await self.repository.get(run_id)
        except Exception as e:
            logger.error(
                "Failed to load workflow run",
                extra={"run_id": run_id, "error": str(e)},
                exc_info=True,
            )
            return Result.failure(
                ErrorKind.ENGINE_UNAVAILABLE, f"Run store unavailable: {e}"
            )
        if run is None:
            return Result.failure(
                ErrorKind.NOT_FOUND, f"Workflow {run_id} not found"
            )
        return Result.success(run)

    async def terminate(
        self, run_id: str, reason: Optional[str] = None
    ) -> Result[WorkflowRun]:
        try:
            async with self._locked(run_id):
                run = await self.repository.get(run_id)
                if run is None:
                    return Result.failure(
                        ErrorKind.NOT_FOUND, f"Workflow {run_id} not found"
                    )
                if run.is_terminal:
                    return Result.failure(
                        ErrorKind.INVALID_STATE,
                        f"Workflow {run_id} is already {run.status.value}",
                    )
                now = self._clock()
                run.status = RunStatus.TERMINATED
                run.termination_reason = reason
                run.closed_at = now
                run.updated_at = now
                await self.repository.save(run)
        except Exception as e:
            logger.error(
                "Failed to terminate workflow run",
                extra={"run_id": run_id, "error": str(e)},
                exc_info=True,
            )
            return Result.failure(
                ErrorKind.ENGINE_UNAVAILABLE, f"Run store unavailable: {e}"
            )

        logger.info(
            "Workflow terminated",
            extra={"run_id": run_id, "reason": reason},
        )
        return Result.success(run)

    async def list_runs(
        self, run_filter: Optional[RunFilter] = None
    ) -> Result[List[WorkflowRun]]:
        try:
            runs = await self.repository.list(run_filter)
        except Exception as e:
            logger.error(
                "Failed to list workflow runs",
                extra={"error": str(e)},
                exc_info=True,
            )
            return Result.failure(
                ErrorKind.ENGINE_UNAVAILABLE, f"Run store unavailable: {e}"
            )
        return Result.success(runs)

    # Lifecycle

    async def resume(self, task_queue: Optional[str] = None) -> List[str]:
        """Claim and drive Running runs that nobody is driving.

        Returns:
            Ids of the runs this call started driving
        """
        if self._stopping:
            return []
        runs = await self.repository.list(
            RunFilter(status=RunStatus.RUNNING, task_queue=task_queue)
        )
        stale_before = self._clock() - self.claim_timeout
        resumed = []
        for run in runs:
            if run.run_id in self._tasks:
                continue
            if run.workflow_type not in self.definitions:
                continue
            if not await self.repository.claim(
                run.run_id, run.run_uid, self.owner, stale_before
            ):
                continue
            logger.info(
                "Resuming workflow run",
                extra={
                    "run_id": run.run_id,
                    "run_uid": run.run_uid,
                    "completed_steps": run.completed_steps,
                },
            )
            self._spawn(run.run_id, run.run_uid)
            resumed.append(run.run_id)
        return resumed

    async def wait(
        self, run_id: str, timeout: Optional[float] = None
    ) -> Result[WorkflowRun]:
        """Wait for this process's driver of ``run_id`` to finish."""
        task = self._tasks.get(run_id)
        if task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
            except asyncio.TimeoutError:
                return Result.failure(
                    ErrorKind.TIMEOUT,
                    f"Workflow {run_id} still running after {timeout}s",
                )
        return await self.get(run_id)

    async def shutdown(self) -> None:
        """Stop starting steps, let in-flight attempts finish."""
        self._stopping = True
        tasks = list(self._tasks.values())
        logger.info(
            "Engine shutting down", extra={"active_runs": len(tasks)}
        )
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def active_runs(self) -> List[str]:
        return sorted(self._tasks)

    # Driving

    @contextlib.asynccontextmanager
    async def _locked(self, run_id: str) -> AsyncIterator[None]:
        """Hold the per-run lock; the entry goes away with its last user."""
        lock, users = self._locks.get(run_id, (asyncio.Lock(), 0))
        self._locks[run_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[run_id]
            if users == 1:
                del self._locks[run_id]
            else:
                self._locks[run_id] = (lock, users - 1)

    def _spawn(self, run_id: str, run_uid: str) -> None:
        task = asyncio.create_task(self._drive_logged(run_id, run_uid))
        self._tasks[run_id] = task

        def _forget(done: "asyncio.Task[None]") -> None:
            if self._tasks.get(run_id) is done:
                del self._tasks[run_id]

        task.add_done_callback(_forget)

    async def _drive_logged(self, run_id: str, run_uid: str) -> None:
        try:
            await self._drive(run_id, run_uid)
        except Exception:
            # The claim goes stale and another resume picks the run up.
            logger.exception(
                "Workflow driver crashed",
                extra={"run_id": run_id, "run_uid": run_uid},
            )

    async def _load_own(
        self, run_id: str, run_uid: str
    ) -> Optional[WorkflowRun]:
        run = await self.repository.get(run_id)
        if run is None or run.run_uid != run_uid:
            return None
        if run.status == RunStatus.RUNNING and run.claimed_by != self.owner:
            logger.warning(
                "Lost claim on workflow run",
                extra={"run_id": run_id, "claimed_by": run.claimed_by},
            )
            return None
        return run

    async def _persist(self, run: WorkflowRun) -> None:
        now = self._clock()
        run.updated_at = now
        if run.status == RunStatus.RUNNING:
            run.claimed_at = now
        elif run.claimed_by == self.owner:
            run.claimed_by = None
            run.claimed_at = None
        await self.repository.save(run)

    async def _close(self, run: WorkflowRun, status: RunStatus) -> None:
        logger.info(
            "Workflow run closed",
            extra={
                "run_id": run.run_id,
                "from_status": run.status.value,
                "to_status": status.value,
            },
        )
        run.status = status
        run.closed_at = self._clock()
        await self._persist(run)

    async def _release(self, run: WorkflowRun) -> None:
        run.claimed_by = None
        run.claimed_at = None
        run.updated_at = self._clock()
        await self.repository.save(run)

    async def _drive(self, run_id: str, run_uid: str) -> None:
        while True:
            async with self._locked(run_id):
                run = await self._load_own(run_id, run_uid)
                if run is None:
                    return
                if run.status != RunStatus.RUNNING:
                    if run.claimed_by == self.owner:
                        await self._persist(run)
                    return
                if self._stopping:
                    await self._release(run)
                    return
                definition = self.definitions[run.workflow_type]
                index = run.completed_steps
                if index >= len(definition.steps):
                    await self._close(run, RunStatus.COMPLETED)
                    return

                step = definition.steps[index]
                if index < len(run.steps):
                    record = run.steps[index]
                else:
                    record = ActivityRecord(name=step.activity)
                    run.steps.append(record)
                record.status = ActivityStatus.RUNNING
                record.started_at = record.started_at or self._clock()
                first_attempt = record.attempt
                business_input = run.input
                await self._persist(run)

            logger.debug(
                "Executing workflow step",
                extra={
                    "run_id": run_id,
                    "step_index": index,
                    "activity": step.activity,
                    "first_attempt": first_attempt,
                },
            )
            result = await self.executor.execute(
                step.activity,
                business_input,
                definition.options,
                on_attempt=functools.partial(
                    self._record_attempt, run_id, run_uid, index
                ),
                first_attempt=first_attempt,
            )

            async with self._locked(run_id):
                run = await self._load_own(run_id, run_uid)
                if run is None:
                    return
                record = run.steps[index]
                error = result.error
                if error is not None and error.kind == ErrorKind.INVALID_STATE:
                    record.status = ActivityStatus.PENDING
                    if run.status == RunStatus.RUNNING:
                        # Stopped between attempts; resume continues at
                        # the recorded attempt.
                        await self._release(run)
                        return
                    # Terminated; the step stays unfinished.
                    if error.last_error_kind:
                        record.error_kind = error.last_error_kind
                    if error.attempts:
                        record.attempt = error.attempts
                    await self._persist(run)
                    return

                record.finished_at = self._clock()
                if error is None:
                    record.status = ActivityStatus.SUCCEEDED
                    record.error_kind = None
                else:
                    record.status = ActivityStatus.FAILED
                    record.error_kind = error.last_error_kind
                    if error.attempts:
                        record.attempt = error.attempts

                if run.status != RunStatus.RUNNING:
                    await self._persist(run)
                    return
                if not result.ok:
                    run.failure = result.error
                    await self._close(run, RunStatus.FAILED)
                    return
                await self._persist(run)
                logger.info(
                    "Workflow step succeeded",
                    extra={
                        "run_id": run_id,
                        "activity": step.activity,
                        "attempt": record.attempt,
                    },
                )

    async def _record_attempt(
        self, run_id: str, run_uid: str, index: int, attempt: int
    ) -> bool:
        async with self._locked(run_id):
            run = await self._load_own(run_id, run_uid)
            if run is None or run.status != RunStatus.RUNNING:
                return False
            record = run.steps[index]
            record.attempt = attempt
            if self._stopping and attempt > 1:
                await self._persist(run)
                return False
            record.status = ActivityStatus.RUNNING
            await self._persist(run)
            return True
