"""
usecase logic must be clean, without direct dependencies.
the workflow gateway is injected, so the same use case drives the Temporal
backend and the local engine.
"""

import logging
from typing import List, Optional, cast

from fulfillment.api.responses import (
    WorkflowInfo,
    WorkflowListResponse,
    WorkflowResponse,
)
from fulfillment.definitions import DEFINITIONS
from fulfillment.domain import (
    ErrorKind,
    Result,
    WorkflowRun,
    WorkflowType,
)
from fulfillment.repositories import WorkflowGateway
from fulfillment.validation import ensure_workflow_gateway

logger = logging.getLogger(__name__)

TEMPORAL_TERMINATE_COMMAND = "temporal workflow terminate --workflow-id {id}"
LOCAL_TERMINATE_COMMAND = "fulfillment-workflows terminate {id}"
MEMORY_STORE_TERMINATE_HINT = (
    "Workflow {id} is held in this API process's in-memory run store and "
    "cannot be terminated from another process; start the API with "
    "API_TERMINATE_ENABLED=true or use RUN_STORE=minio"
)

_LABELS = {
    WorkflowType.ORDER: "Order",
    WorkflowType.INVOICE: "Invoice",
}


class WorkflowSubmissionUseCase:
    """
    Submission and query operations behind the HTTP API and the CLIs.

    Validates identifiers and reports the gateway's outcome verbatim as
    response models. Nothing here retries: a failed start is reported,
    not repeated.
    """

    def __init__(
        self,
        gateway: WorkflowGateway,
        backend: str = "temporal",
        terminate_enabled: bool = False,
        run_store: str = "memory",
    ) -> None:
        self.gateway = ensure_workflow_gateway(gateway)
        self.backend = backend
        self.run_store = run_store
        self.terminate_enabled = terminate_enabled

    async def _start(
        self, workflow_type: WorkflowType, business_id: str
    ) -> Result[WorkflowRun]:
        label = _LABELS[workflow_type]
        if not business_id or not business_id.strip():
            return Result.failure(
                ErrorKind.INVALID_ARGUMENT, f"{label} ID must not be empty"
            )
        return await self.gateway.start(business_id, workflow_type)

    async def start_workflow(
        self, workflow_type: WorkflowType, business_id: str
    ) -> WorkflowResponse:
        definition = DEFINITIONS[workflow_type]
        label = _LABELS[workflow_type]
        logger.info(
            f"Starting {label} workflow",
            extra={"workflow_id": business_id},
        )

        result = await self._start(workflow_type, business_id)
        if result.error is not None:
            logger.error(
                f"Failed to start {label} workflow",
                extra={
                    "workflow_id": business_id,
                    "error_kind": result.error.kind.value,
                    "error": result.error.message,
                },
            )
            return WorkflowResponse(
                success=False,
                message=(
                    f"Failed to start {label} workflow: "
                    f"{result.error.message}"
                ),
                workflow_id=business_id,
                workflow_type=workflow_type.value,
            )

        return WorkflowResponse(
            success=True,
            message=f"{label} workflow started successfully: {business_id}",
            workflow_id=business_id,
            task_queue=definition.task_queue,
            workflow_type=workflow_type.value,
        )

    async def start_order(self, order_id: str) -> WorkflowResponse:
        return await self.start_workflow(WorkflowType.ORDER, order_id)

    async def start_invoice(self, invoice_id: str) -> WorkflowResponse:
        return await self.start_workflow(WorkflowType.INVOICE, invoice_id)

    async def start_both(
        self, order_id: str, invoice_id: str
    ) -> WorkflowResponse:
        """Start the Order run, then the Invoice run.

        The Invoice run is not attempted when the Order run fails to start.
        An Order run that started before the Invoice start failed keeps
        running.
        """
        workflow_ids = f"{order_id},{invoice_id}"
        workflow_types = ",".join(
            [WorkflowType.ORDER.value, WorkflowType.INVOICE.value]
        )
        logger.info(
            "Starting both Order and Invoice workflows",
            extra={"order_id": order_id, "invoice_id": invoice_id},
        )

        for workflow_type, business_id in (
            (WorkflowType.ORDER, order_id),
            (WorkflowType.INVOICE, invoice_id),
        ):
            result = await self._start(workflow_type, business_id)
            if result.error is not None:
                logger.error(
                    "Failed to start workflows",
                    extra={
                        "order_id": order_id,
                        "invoice_id": invoice_id,
                        "failed_workflow_id": business_id,
                        "error_kind": result.error.kind.value,
                        "error": result.error.message,
                    },
                )
                return WorkflowResponse(
                    success=False,
                    message=(
                        f"Failed to start workflows: {result.error.message}"
                    ),
                    workflow_id=workflow_ids,
                    workflow_type=workflow_types,
                )

        return WorkflowResponse(
            success=True,
            message=(
                "Both Order and Invoice workflows started successfully: "
                f"{order_id}, {invoice_id}"
            ),
            workflow_id=workflow_ids,
            task_queue=",".join(
                DEFINITIONS[workflow_type].task_queue
                for workflow_type in (WorkflowType.ORDER, WorkflowType.INVOICE)
            ),
            workflow_type=workflow_types,
        )

    async def list_workflows(self) -> WorkflowListResponse:
        result = await self.gateway.list_runs()
        if result.error is not None:
            logger.error(
                "Failed to retrieve workflow list",
                extra={"error": result.error.message},
            )
            return WorkflowListResponse(
                success=False,
                message=(
                    f"Failed to retrieve workflow list: "
                    f"{result.error.message}"
                ),
            )

        runs: List[WorkflowRun] = result.value or []
        workflows = [
            WorkflowInfo(
                id=run.run_id,
                status=run.status.value,
                type=run.workflow_type.value,
                start_time=run.created_at,
            )
            for run in runs
        ]
        return WorkflowListResponse(
            success=True, workflows=workflows, count=len(workflows)
        )

    def termination_guidance(self, workflow_id: str) -> Optional[str]:
        """Command an operator runs to terminate ``workflow_id``.

        None when no other process can reach the run: local runs in the
        in-memory store live only inside the process that started them.
        """
        if self.backend != "local":
            return TEMPORAL_TERMINATE_COMMAND.format(id=workflow_id)
        if self.run_store != "minio":
            return None
        return LOCAL_TERMINATE_COMMAND.format(id=workflow_id)

    async def terminate_workflow(
        self, workflow_id: str, reason: Optional[str] = None
    ) -> WorkflowResponse:
        """Return the termination command, or terminate when enabled."""
        logger.info(
            "Terminating workflow",
            extra={
                "workflow_id": workflow_id,
                "terminate_enabled": self.terminate_enabled,
            },
        )
        if not self.terminate_enabled:
            command = self.termination_guidance(workflow_id)
            if command is None:
                return WorkflowResponse(
                    success=False,
                    message=MEMORY_STORE_TERMINATE_HINT.format(id=workflow_id),
                    workflow_id=workflow_id,
                )
            return WorkflowResponse(
                success=True,
                message=f"Workflow termination command: {command}",
                workflow_id=workflow_id,
            )

        result = await self.gateway.terminate(workflow_id, reason)
        if result.error is not None:
            logger.error(
                "Failed to terminate workflow",
                extra={
                    "workflow_id": workflow_id,
                    "error_kind": result.error.kind.value,
                    "error": result.error.message,
                },
            )
            return WorkflowResponse(
                success=False,
                message=f"Failed to terminate workflow: {result.error.message}",
                workflow_id=workflow_id,
            )

        run = cast(WorkflowRun, result.value)
        return WorkflowResponse(
            success=True,
            message=f"Workflow terminated: {workflow_id}",
            workflow_id=workflow_id,
            task_queue=run.task_queue,
            workflow_type=run.workflow_type.value,
        )
