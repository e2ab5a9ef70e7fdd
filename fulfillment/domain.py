"""
Domain models defined as Pydantic models.
These are pure data structures with validation.
"""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, FrozenSet, Generic, List, Optional, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowType(str, Enum):
    ORDER = "OrderWorkflow"
    INVOICE = "InvoiceWorkflow"


class RunStatus(str, Enum):
    CREATED = "Created"
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"
    TERMINATED = "Terminated"

    @property
    def is_terminal(self) -> bool:
        return self in (
            RunStatus.COMPLETED,
            RunStatus.FAILED,
            RunStatus.TERMINATED,
        )


class ActivityStatus(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class ErrorKind(str, Enum):
    DUPLICATE_RUN_ID = "DuplicateRunId"
    NOT_FOUND = "NotFound"
    INVALID_STATE = "InvalidState"
    ACTIVITY_FAILED = "ActivityFailed"
    TIMEOUT = "Timeout"
    ENGINE_UNAVAILABLE = "EngineUnavailable"
    INVALID_ARGUMENT = "InvalidArgument"


class RetryPolicy(BaseModel):
    """Retry parameters attached to an activity invocation."""

    model_config = ConfigDict(frozen=True)

    initial_interval: timedelta = timedelta(seconds=1)
    maximum_interval: timedelta = timedelta(seconds=10)
    maximum_attempts: int = 3
    backoff_coefficient: float = 2.0
    non_retryable_error_kinds: FrozenSet[str] = frozenset()

    @field_validator("initial_interval")
    @classmethod
    def initial_interval_must_be_positive(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("Initial interval must be positive")
        return v

    @field_validator("maximum_attempts")
    @classmethod
    def maximum_attempts_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Maximum attempts must be at least 1")
        return v

    @field_validator("backoff_coefficient")
    @classmethod
    def backoff_coefficient_must_not_shrink(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError("Backoff coefficient must be at least 1.0")
        return v

    @model_validator(mode="after")
    def maximum_interval_not_below_initial(self) -> "RetryPolicy":
        if self.maximum_interval < self.initial_interval:
            raise ValueError(
                "Maximum interval must not be shorter than initial interval"
            )
        return self


class ActivityOptions(BaseModel):
    """Per-invocation execution options: timeouts plus retry policy."""

    model_config = ConfigDict(frozen=True)

    start_to_close_timeout: timedelta = timedelta(seconds=30)
    schedule_to_close_timeout: Optional[timedelta] = None
    retry_policy: RetryPolicy = RetryPolicy()

    @field_validator("start_to_close_timeout")
    @classmethod
    def timeout_must_be_positive(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("Start-to-close timeout must be positive")
        return v


class RetryDecision(BaseModel):
    """Outcome of evaluating a retry policy after a failed attempt."""

    model_config = ConfigDict(frozen=True)

    should_retry: bool
    after: Optional[timedelta] = None
    reason: Optional[str] = None

    @classmethod
    def retry(cls, after: timedelta) -> "RetryDecision":
        return cls(should_retry=True, after=after)

    @classmethod
    def fail(cls, reason: str) -> "RetryDecision":
        return cls(should_retry=False, reason=reason)


class EngineError(BaseModel):
    """Structured error carried by a failed Result."""

    kind: ErrorKind
    message: str
    attempts: Optional[int] = None
    last_error_kind: Optional[str] = None


T = TypeVar("T")


class Result(BaseModel, Generic[T]):
    """Explicit success/failure value returned by engine operations.

    Callers check ``ok`` and handle ``error.kind`` instead of catching
    exceptions.
    """

    value: Optional[T] = None
    error: Optional[EngineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any = None) -> "Result[Any]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        attempts: Optional[int] = None,
        last_error_kind: Optional[str] = None,
    ) -> "Result[Any]":
        return cls(
            error=EngineError(
                kind=kind,
                message=message,
                attempts=attempts,
                last_error_kind=last_error_kind,
            )
        )


class ActivityRecord(BaseModel):
    name: str
    attempt: int = 1
    status: ActivityStatus = ActivityStatus.PENDING
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error_kind: Optional[str] = None

    @field_validator("attempt")
    @classmethod
    def attempt_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Attempt must be at least 1")
        return v


class WorkflowRun(BaseModel):
    run_id: str
    run_uid: str = Field(default_factory=lambda: uuid.uuid4().hex)
    workflow_type: WorkflowType
    task_queue: str
    input: str
    status: RunStatus = RunStatus.CREATED
    steps: List[ActivityRecord] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    closed_at: Optional[datetime] = None
    claimed_by: Optional[str] = None
    claimed_at: Optional[datetime] = None
    failure: Optional[EngineError] = None
    termination_reason: Optional[str] = None

    @field_validator("run_id")
    @classmethod
    def run_id_must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Run ID must not be empty")
        return v

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def completed_steps(self) -> int:
        """Length of the leading prefix of succeeded steps."""
        count = 0
        for record in self.steps:
            if record.status != ActivityStatus.SUCCEEDED:
                break
            count += 1
        return count


class RunFilter(BaseModel):
    status: Optional[RunStatus] = None
    workflow_type: Optional[WorkflowType] = None
    task_queue: Optional[str] = None

    def matches(self, run: WorkflowRun) -> bool:
        if self.status is not None and run.status != self.status:
            return False
        if (
            self.workflow_type is not None
            and run.workflow_type != self.workflow_type
        ):
            return False
        if self.task_queue is not None and run.task_queue != self.task_queue:
            return False
        return True
