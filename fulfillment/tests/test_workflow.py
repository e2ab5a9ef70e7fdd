"""
Tests for the Temporal workflow classes.

These tests verify orchestration only: ``workflow.execute_activity`` is
patched, so the workflow code runs outside a Temporal worker and the
activities themselves never execute.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from fulfillment.definitions import DEFAULT_RETRY_POLICY
from fulfillment.workflow import (
    STEP_COMPLETED,
    STEP_FAILED,
    STEP_INITIALIZED,
    InvoiceWorkflow,
    OrderWorkflow,
    to_temporal_retry_policy,
    workflows_for_task_queue,
)


def test_retry_policy_translation() -> None:
    policy = to_temporal_retry_policy(DEFAULT_RETRY_POLICY)

    assert policy.initial_interval == timedelta(seconds=1)
    assert policy.maximum_interval == timedelta(seconds=10)
    assert policy.backoff_coefficient == 2.0
    assert policy.maximum_attempts == 3
    assert list(policy.non_retryable_error_types or []) == [
        "InvalidOperationError"
    ]


def test_workflows_for_task_queue() -> None:
    assert workflows_for_task_queue("my-task-queue") == [OrderWorkflow]
    assert workflows_for_task_queue("invoice-task-queue") == [InvoiceWorkflow]


class TestOrderWorkflow:
    @pytest.mark.asyncio
    async def test_runs_order_activities_in_sequence(self) -> None:
        with patch(
            "temporalio.workflow.execute_activity", new=AsyncMock()
        ) as mock_execute_activity, patch("temporalio.workflow.logger"):
            workflow = OrderWorkflow()
            assert workflow.get_current_step() == STEP_INITIALIZED

            completed = await workflow.run("order-001")

        assert completed == [
            "ChargeCustomer",
            "ShipOrder",
            "SendConfirmationEmail",
        ]
        assert [
            call.args for call in mock_execute_activity.await_args_list
        ] == [(name, "order-001") for name in completed]
        kwargs = mock_execute_activity.await_args_list[0].kwargs
        assert kwargs["start_to_close_timeout"] == timedelta(seconds=30)
        assert kwargs["retry_policy"].maximum_attempts == 3
        assert workflow.get_current_step() == STEP_COMPLETED

    @pytest.mark.asyncio
    async def test_failed_activity_fails_the_workflow(self) -> None:
        mock_logger = MagicMock()
        with patch(
            "temporalio.workflow.execute_activity",
            new=AsyncMock(side_effect=[None, RuntimeError("carrier down")]),
        ) as mock_execute_activity, patch(
            "temporalio.workflow.logger", new=mock_logger
        ):
            workflow = OrderWorkflow()
            with pytest.raises(RuntimeError, match="carrier down"):
                await workflow.run("order-001")

        assert mock_execute_activity.await_count == 2
        assert workflow.get_current_step() == STEP_FAILED
        mock_logger.error.assert_called_once()


class TestInvoiceWorkflow:
    @pytest.mark.asyncio
    async def test_runs_invoice_activities_in_sequence(self) -> None:
        with patch(
            "temporalio.workflow.execute_activity", new=AsyncMock()
        ) as mock_execute_activity, patch("temporalio.workflow.logger"):
            completed = await InvoiceWorkflow().run("invoice-001")

        assert completed == ["GenerateInvoice", "SendInvoiceEmail"]
        assert mock_execute_activity.await_count == 2
