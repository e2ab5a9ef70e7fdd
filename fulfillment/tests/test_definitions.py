"""
Tests for the static workflow definitions.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from fulfillment.definitions import (
    DEFINITIONS,
    INVOICE_TASK_QUEUE,
    ORDER_TASK_QUEUE,
    WorkflowDefinition,
    definitions_for_task_queue,
    get_definition,
)
from fulfillment.domain import WorkflowType
from fulfillment.engine import create_default_registry


def test_order_workflow_steps() -> None:
    definition = get_definition(WorkflowType.ORDER)
    assert definition.task_queue == "my-task-queue"
    assert definition.activity_group == "OrderActivities"
    assert definition.activity_names == [
        "ChargeCustomer",
        "ShipOrder",
        "SendConfirmationEmail",
    ]


def test_invoice_workflow_steps() -> None:
    definition = get_definition(WorkflowType.INVOICE)
    assert definition.task_queue == "invoice-task-queue"
    assert definition.activity_group == "InvoiceActivities"
    assert definition.activity_names == [
        "GenerateInvoice",
        "SendInvoiceEmail",
    ]


@pytest.mark.parametrize("workflow_type", list(WorkflowType))
def test_every_step_uses_the_shared_options(
    workflow_type: WorkflowType,
) -> None:
    options = DEFINITIONS[workflow_type].options
    assert options.start_to_close_timeout == timedelta(seconds=30)
    policy = options.retry_policy
    assert policy.initial_interval == timedelta(seconds=1)
    assert policy.maximum_interval == timedelta(seconds=10)
    assert policy.maximum_attempts == 3
    assert policy.non_retryable_error_kinds == {"InvalidOperationError"}


def test_every_step_has_a_registered_activity() -> None:
    registry = create_default_registry(delay_seconds=0)
    for definition in DEFINITIONS.values():
        for name in definition.activity_names:
            assert name in registry


def test_lookup_by_task_queue() -> None:
    assert list(definitions_for_task_queue(ORDER_TASK_QUEUE)) == [
        WorkflowType.ORDER
    ]
    assert list(definitions_for_task_queue(INVOICE_TASK_QUEUE)) == [
        WorkflowType.INVOICE
    ]


def test_unknown_task_queue_raises() -> None:
    with pytest.raises(ValueError, match="Unknown task queue"):
        definitions_for_task_queue("nowhere")


def test_definition_needs_steps() -> None:
    with pytest.raises(ValidationError, match="at least one step"):
        WorkflowDefinition(
            workflow_type=WorkflowType.ORDER,
            task_queue=ORDER_TASK_QUEUE,
            activity_group="OrderActivities",
            steps=(),
        )
