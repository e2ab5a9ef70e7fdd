"""
Temporal workflow classes for the Order and Invoice processes.

The step lists and activity options come from ``fulfillment.definitions``,
the same definitions the local engine walks, so both backends run the
activities in the same order under the same retry policy. Temporal owns
durability here: each step is handed to ``workflow.execute_activity`` and
the event history replaces the run repository.
"""

from typing import List

from temporalio import workflow
from temporalio.common import RetryPolicy as TemporalRetryPolicy

with workflow.unsafe.imports_passed_through():
    from fulfillment.definitions import (
        INVOICE_WORKFLOW,
        ORDER_WORKFLOW,
        WorkflowDefinition,
        definitions_for_task_queue,
    )
    from fulfillment.domain import RetryPolicy

STEP_INITIALIZED = "initialized"
STEP_COMPLETED = "completed"
STEP_FAILED = "failed"


def to_temporal_retry_policy(policy: RetryPolicy) -> TemporalRetryPolicy:
    return TemporalRetryPolicy(
        initial_interval=policy.initial_interval,
        backoff_coefficient=policy.backoff_coefficient,
        maximum_interval=policy.maximum_interval,
        maximum_attempts=policy.maximum_attempts,
        non_retryable_error_types=sorted(policy.non_retryable_error_kinds),
    )


class _StepRunner:
    """Runs a definition's steps one after another, tracking progress."""

    def __init__(self, definition: WorkflowDefinition) -> None:
        self.definition = definition
        self.current_step = STEP_INITIALIZED
        self.completed: List[str] = []

    async def run(self, business_id: str) -> List[str]:
        options = self.definition.options
        retry_policy = to_temporal_retry_policy(options.retry_policy)
        workflow_type = self.definition.workflow_type.value

        workflow.logger.info(
            f"Starting {workflow_type}",
            extra={"business_id": business_id},
        )
        for step in self.definition.steps:
            self.current_step = step.activity
            try:
                await workflow.execute_activity(
                    step.activity,
                    business_id,
                    start_to_close_timeout=options.start_to_close_timeout,
                    schedule_to_close_timeout=options.schedule_to_close_timeout,
                    retry_policy=retry_policy,
                )
            except Exception as e:
                self.current_step = STEP_FAILED
                workflow.logger.error(
                    f"Workflow failed for {business_id}: {e}",
                    extra={
                        "business_id": business_id,
                        "workflow_type": workflow_type,
                        "activity": step.activity,
                        "error": str(e),
                    },
                )
                raise
            self.completed.append(step.activity)

        self.current_step = STEP_COMPLETED
        workflow.logger.info(
            f"{workflow_type} completed",
            extra={"business_id": business_id, "steps": self.completed},
        )
        return list(self.completed)


@workflow.defn(name=ORDER_WORKFLOW.workflow_type.value)
class OrderWorkflow:
    def __init__(self) -> None:
        self._runner = _StepRunner(ORDER_WORKFLOW)

    @workflow.query
    def get_current_step(self) -> str:
        """Query method to get the current workflow step"""
        return str(self._runner.current_step)

    @workflow.run
    async def run(self, order_id: str) -> List[str]:
        return await self._runner.run(order_id)


@workflow.defn(name=INVOICE_WORKFLOW.workflow_type.value)
class InvoiceWorkflow:
    def __init__(self) -> None:
        self._runner = _StepRunner(INVOICE_WORKFLOW)

    @workflow.query
    def get_current_step(self) -> str:
        """Query method to get the current workflow step"""
        return str(self._runner.current_step)

    @workflow.run
    async def run(self, invoice_id: str) -> List[str]:
        return await self._runner.run(invoice_id)


WORKFLOW_CLASSES = {
    ORDER_WORKFLOW.workflow_type: OrderWorkflow,
    INVOICE_WORKFLOW.workflow_type: InvoiceWorkflow,
}


def workflows_for_task_queue(task_queue: str) -> List[type]:
    """Return the workflow classes a worker on ``task_queue`` registers."""
    return [
        WORKFLOW_CLASSES[workflow_type]
        for workflow_type in definitions_for_task_queue(task_queue)
    ]
