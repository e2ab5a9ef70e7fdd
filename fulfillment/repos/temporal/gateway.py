"""
Temporal implementation of the WorkflowGateway protocol.

Starts, describes, lists and terminates workflow executions through a
``temporalio`` client. Temporal keeps the step history itself, so runs
returned from here carry status and timestamps but an empty step list.
"""

import logging
from typing import Dict, List, Optional, cast

from temporalio.client import (
    Client,
    WorkflowExecution,
    WorkflowExecutionStatus,
)
from temporalio.exceptions import WorkflowAlreadyStartedError
from temporalio.service import RPCError, RPCStatusCode

from fulfillment.definitions import DEFINITIONS, WorkflowDefinition
from fulfillment.domain import (
    ErrorKind,
    Result,
    RunFilter,
    RunStatus,
    WorkflowRun,
    WorkflowType,
)

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    WorkflowExecutionStatus.RUNNING: RunStatus.RUNNING,
    WorkflowExecutionStatus.COMPLETED: RunStatus.COMPLETED,
    WorkflowExecutionStatus.FAILED: RunStatus.FAILED,
    WorkflowExecutionStatus.CANCELED: RunStatus.FAILED,
    WorkflowExecutionStatus.TIMED_OUT: RunStatus.FAILED,
    WorkflowExecutionStatus.TERMINATED: RunStatus.TERMINATED,
    WorkflowExecutionStatus.CONTINUED_AS_NEW: RunStatus.COMPLETED,
}


def list_query(definitions: Dict[WorkflowType, WorkflowDefinition]) -> str:
    return " OR ".join(
        f"WorkflowType='{workflow_type.value}'"
        for workflow_type in definitions
    )


class TemporalWorkflowGateway:
    def __init__(
        self,
        client: Client,
        definitions: Optional[Dict[WorkflowType, WorkflowDefinition]] = None,
    ) -> None:
        self.client = client
        self.definitions = dict(definitions or DEFINITIONS)

    def _to_run(self, execution: WorkflowExecution) -> Optional[WorkflowRun]:
        try:
            workflow_type = WorkflowType(execution.workflow_type)
        except ValueError:
            return None
        status = (
            _STATUS_MAP.get(execution.status, RunStatus.RUNNING)
            if execution.status is not None
            else RunStatus.RUNNING
        )
        return WorkflowRun(
            run_id=execution.id,
            run_uid=execution.run_id,
            workflow_type=workflow_type,
            task_queue=execution.task_queue,
            input=execution.id,
            status=status,
            created_at=execution.start_time,
            updated_at=execution.close_time or execution.start_time,
            closed_at=execution.close_time,
        )

    @staticmethod
    def _rpc_failure(run_id: str, e: RPCError) -> Result[WorkflowRun]:
        if e.status == RPCStatusCode.NOT_FOUND:
            return Result.failure(
                ErrorKind.NOT_FOUND, f"Workflow {run_id} not found"
            )
        return Result.failure(
            ErrorKind.ENGINE_UNAVAILABLE, f"Temporal request failed: {e}"
        )

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
        definition = self.definitions[WorkflowType(workflow_type)]
        business_id = run_id if input is None else input

        logger.debug(
            "Starting workflow",
            extra={
                "run_id": run_id,
                "workflow_type": definition.workflow_type.value,
                "task_queue": definition.task_queue,
            },
        )
        try:
            handle = await self.client.start_workflow(
                definition.workflow_type.value,
                business_id,
                id=run_id,
                task_queue=definition.task_queue,
            )
        except WorkflowAlreadyStartedError:
            return Result.failure(
                ErrorKind.DUPLICATE_RUN_ID,
                f"Workflow {run_id} is already running",
            )
        except RPCError as e:
            logger.error(
                "Failed to start workflow",
                extra={"run_id": run_id, "error": str(e)},
            )
            return Result.failure(
                ErrorKind.ENGINE_UNAVAILABLE, f"Temporal request failed: {e}"
            )

        logger.info(
            "Workflow started",
            extra={
                "run_id": run_id,
                "run_uid": handle.result_run_id,
                "workflow_type": definition.workflow_type.value,
                "task_queue": definition.task_queue,
            },
        )
        run = WorkflowRun(
            run_id=run_id,
            workflow_type=definition.workflow_type,
            task_queue=definition.task_queue,
            input=business_id,
            status=RunStatus.RUNNING,
        )
        if handle.result_run_id:
            run.run_uid = handle.result_run_id
        return Result.success(run)

    async def get(self, run_id: str) -> Result[WorkflowRun]:
        try:
            description = await self.client.get_workflow_handle(
                run_id
            ).describe()
        except RPCError as e:
            return self._rpc_failure(run_id, e)
        run = self._to_run(description)
        if run is None:
            return Result.failure(
                ErrorKind.NOT_FOUND,
                f"Workflow {run_id} is not an order or invoice workflow",
            )
        return Result.success(run)

    async def terminate(
        self, run_id: str, reason: Optional[str] = None
    ) -> Result[WorkflowRun]:
        current = await self.get(run_id)
        if not current.ok:
            return current
        run = cast(WorkflowRun, current.value)
        if run.is_terminal:
            return Result.failure(
                ErrorKind.INVALID_STATE,
                f"Workflow {run_id} is already {run.status.value}",
            )
        try:
            await self.client.get_workflow_handle(run_id).terminate(
                reason=reason
            )
        except RPCError as e:
            return self._rpc_failure(run_id, e)

        logger.info(
            "Workflow terminated", extra={"run_id": run_id, "reason": reason}
        )
        run.status = RunStatus.TERMINATED
        run.termination_reason = reason
        return Result.success(run)

    async def list_runs(
        self, run_filter: Optional[RunFilter] = None
    ) -> Result[List[WorkflowRun]]:
        run_filter = run_filter or RunFilter()
        runs = []
        try:
            async for execution in self.client.list_workflows(
                list_query(self.definitions)
            ):
                run = self._to_run(execution)
                if run is not None and run_filter.matches(run):
                    runs.append(run)
        except RPCError as e:
            logger.error(
                "Failed to list workflows", extra={"error": str(e)}
            )
            return Result.failure(
                ErrorKind.ENGINE_UNAVAILABLE, f"Temporal request failed: {e}"
            )
        return Result.success(runs)
