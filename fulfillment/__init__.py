"""
Order and invoice workflow orchestration.

Workflows run either on a Temporal server or on the self-hosted engine in
``fulfillment.engine``; both read the definitions in
``fulfillment.definitions``.
"""

from .domain import (
    ActivityRecord,
    ActivityStatus,
    EngineError,
    ErrorKind,
    Result,
    RetryPolicy,
    RunFilter,
    RunStatus,
    WorkflowRun,
    WorkflowType,
)

__all__ = [
    "ActivityRecord",
    "ActivityStatus",
    "EngineError",
    "ErrorKind",
    "Result",
    "RetryPolicy",
    "RunFilter",
    "RunStatus",
    "WorkflowRun",
    "WorkflowType",
]
