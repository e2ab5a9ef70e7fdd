"""
Tests for domain model validation and helpers.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from fulfillment.domain import (
    ActivityOptions,
    ActivityStatus,
    ErrorKind,
    Result,
    RetryPolicy,
    RunFilter,
    RunStatus,
    WorkflowRun,
    WorkflowType,
)
from fulfillment.tests.factories import (
    ActivityRecordFactory,
    WorkflowRunFactory,
)


class TestRetryPolicy:
    def test_defaults(self) -> None:
        policy = RetryPolicy()
        assert policy.initial_interval == timedelta(seconds=1)
        assert policy.maximum_interval == timedelta(seconds=10)
        assert policy.maximum_attempts == 3
        assert policy.backoff_coefficient == 2.0
        assert policy.non_retryable_error_kinds == frozenset()

    def test_rejects_zero_attempts(self) -> None:
        with pytest.raises(ValidationError, match="at least 1"):
            RetryPolicy(maximum_attempts=0)

    def test_rejects_non_positive_initial_interval(self) -> None:
        with pytest.raises(ValidationError, match="must be positive"):
            RetryPolicy(initial_interval=timedelta(0))

    def test_rejects_shrinking_coefficient(self) -> None:
        with pytest.raises(ValidationError, match="at least 1.0"):
            RetryPolicy(backoff_coefficient=0.5)

    def test_rejects_maximum_below_initial(self) -> None:
        with pytest.raises(ValidationError, match="Maximum interval"):
            RetryPolicy(
                initial_interval=timedelta(seconds=5),
                maximum_interval=timedelta(seconds=1),
            )

    def test_is_frozen(self) -> None:
        policy = RetryPolicy()
        with pytest.raises(ValidationError):
            policy.maximum_attempts = 5  # type: ignore[misc]


class TestActivityOptions:
    def test_defaults(self) -> None:
        options = ActivityOptions()
        assert options.start_to_close_timeout == timedelta(seconds=30)
        assert options.schedule_to_close_timeout is None

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ValidationError):
            ActivityOptions(start_to_close_timeout=timedelta(0))


class TestResult:
    def test_success(self) -> None:
        result = Result.success("value")
        assert result.ok
        assert result.value == "value"
        assert result.error is None

    def test_failure_carries_error_details(self) -> None:
        result = Result.failure(
            ErrorKind.ACTIVITY_FAILED,
            "boom",
            attempts=3,
            last_error_kind="ConnectionError",
        )
        assert not result.ok
        assert result.value is None
        assert result.error is not None
        assert result.error.kind == ErrorKind.ACTIVITY_FAILED
        assert result.error.attempts == 3
        assert result.error.last_error_kind == "ConnectionError"


class TestWorkflowRun:
    def test_rejects_blank_run_id(self) -> None:
        with pytest.raises(ValidationError, match="must not be empty"):
            WorkflowRun(
                run_id="  ",
                workflow_type=WorkflowType.ORDER,
                task_queue="my-task-queue",
                input="x",
            )

    def test_new_run_is_created_with_unique_uid(self) -> None:
        first = WorkflowRun(
            run_id="order-001",
            workflow_type=WorkflowType.ORDER,
            task_queue="my-task-queue",
            input="order-001",
        )
        second = WorkflowRun(
            run_id="order-001",
            workflow_type=WorkflowType.ORDER,
            task_queue="my-task-queue",
            input="order-001",
        )
        assert first.status == RunStatus.CREATED
        assert first.steps == []
        assert first.run_uid != second.run_uid

    def test_completed_steps_counts_leading_successes_only(self) -> None:
        run = WorkflowRunFactory(
            steps=[
                ActivityRecordFactory(name="ChargeCustomer"),
                ActivityRecordFactory(
                    name="ShipOrder", status=ActivityStatus.FAILED
                ),
                ActivityRecordFactory(name="SendConfirmationEmail"),
            ]
        )
        assert run.completed_steps == 1

    @pytest.mark.parametrize(
        "status,terminal",
        [
            (RunStatus.CREATED, False),
            (RunStatus.RUNNING, False),
            (RunStatus.COMPLETED, True),
            (RunStatus.FAILED, True),
            (RunStatus.TERMINATED, True),
        ],
    )
    def test_terminal_statuses(self, status: RunStatus, terminal: bool) -> None:
        assert WorkflowRunFactory(status=status).is_terminal is terminal

    def test_json_round_trip_keeps_steps_and_failure(self) -> None:
        run = WorkflowRunFactory(
            status=RunStatus.FAILED,
            steps=[
                ActivityRecordFactory(
                    status=ActivityStatus.FAILED,
                    attempt=3,
                    error_kind="ConnectionError",
                )
            ],
            failure=Result.failure(
                ErrorKind.ACTIVITY_FAILED, "gave up", attempts=3
            ).error,
        )
        restored = WorkflowRun.model_validate_json(run.model_dump_json())
        assert restored == run


class TestRunFilter:
    def test_empty_filter_matches_everything(self) -> None:
        assert RunFilter().matches(WorkflowRunFactory())

    def test_filters_combine(self) -> None:
        run = WorkflowRunFactory(status=RunStatus.COMPLETED)
        assert RunFilter(
            status=RunStatus.COMPLETED, workflow_type=WorkflowType.ORDER
        ).matches(run)
        assert not RunFilter(
            status=RunStatus.COMPLETED, workflow_type=WorkflowType.INVOICE
        ).matches(run)
        assert not RunFilter(task_queue="invoice-task-queue").matches(run)
