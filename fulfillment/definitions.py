"""
Static workflow definitions.

A definition is an ordered list of activity invocations plus the options
every step runs under. Both execution backends read these definitions: the
local engine walks the steps itself, the Temporal workflows hand each step
to ``workflow.execute_activity``. This module must stay free of I/O so it
can be imported inside the Temporal workflow sandbox.
"""

from datetime import timedelta
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from fulfillment import activity_names as names
from fulfillment.domain import ActivityOptions, RetryPolicy, WorkflowType

ORDER_TASK_QUEUE = "my-task-queue"
INVOICE_TASK_QUEUE = "invoice-task-queue"

DEFAULT_RETRY_POLICY = RetryPolicy(
    initial_interval=timedelta(seconds=1),
    maximum_interval=timedelta(seconds=10),
    maximum_attempts=3,
    non_retryable_error_kinds=frozenset({"InvalidOperationError"}),
)

DEFAULT_ACTIVITY_OPTIONS = ActivityOptions(
    start_to_close_timeout=timedelta(seconds=30),
    retry_policy=DEFAULT_RETRY_POLICY,
)


class WorkflowStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    activity: str


class WorkflowDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    workflow_type: WorkflowType
    task_queue: str
    activity_group: str
    steps: Tuple[WorkflowStep, ...]
    options: ActivityOptions = DEFAULT_ACTIVITY_OPTIONS

    @field_validator("steps")
    @classmethod
    def steps_must_not_be_empty(
        cls, v: Tuple[WorkflowStep, ...]
    ) -> Tuple[WorkflowStep, ...]:
        if not v:
            raise ValueError("Workflow must contain at least one step")
        return v

    @property
    def activity_names(self) -> List[str]:
        return [step.activity for step in self.steps]


ORDER_WORKFLOW = WorkflowDefinition(
    workflow_type=WorkflowType.ORDER,
    task_queue=ORDER_TASK_QUEUE,
    activity_group=names.ORDER_ACTIVITIES_GROUP,
    steps=(
        WorkflowStep(activity=names.CHARGE_CUSTOMER),
        WorkflowStep(activity=names.SHIP_ORDER),
        WorkflowStep(activity=names.SEND_CONFIRMATION_EMAIL),
    ),
)

INVOICE_WORKFLOW = WorkflowDefinition(
    workflow_type=WorkflowType.INVOICE,
    task_queue=INVOICE_TASK_QUEUE,
    activity_group=names.INVOICE_ACTIVITIES_GROUP,
    steps=(
        WorkflowStep(activity=names.GENERATE_INVOICE),
        WorkflowStep(activity=names.SEND_INVOICE_EMAIL),
    ),
)

DEFINITIONS: Dict[WorkflowType, WorkflowDefinition] = {
    WorkflowType.ORDER: ORDER_WORKFLOW,
    WorkflowType.INVOICE: INVOICE_WORKFLOW,
}

TASK_QUEUES: Tuple[str, ...] = (ORDER_TASK_QUEUE, INVOICE_TASK_QUEUE)


def get_definition(workflow_type: WorkflowType) -> WorkflowDefinition:
    return DEFINITIONS[WorkflowType(workflow_type)]


def definitions_for_task_queue(
    task_queue: str,
) -> Dict[WorkflowType, WorkflowDefinition]:
    """Return the definitions routed to ``task_queue``."""
    found = {
        workflow_type: definition
        for workflow_type, definition in DEFINITIONS.items()
        if definition.task_queue == task_queue
    }
    if not found:
        raise ValueError(f"Unknown task queue: {task_queue}")
    return found
