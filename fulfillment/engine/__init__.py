"""
Self-hosted minimal orchestrator.

Registry, policy evaluator, executor and engine reproduce locally the
sequencing, retry and timeout behaviour the workflows rely on, with run
progress persisted through a WorkflowRunRepository.
"""

from .engine import WorkflowEngine
from .executor import ActivityExecutor
from .poller import LocalWorker
from .policy import backoff_interval, decide
from .registry import (
    ActivityExecutionError,
    ActivityRegistry,
    create_default_registry,
)

__all__ = [
    "ActivityExecutionError",
    "ActivityExecutor",
    "ActivityRegistry",
    "LocalWorker",
    "WorkflowEngine",
    "backoff_interval",
    "create_default_registry",
    "decide",
]
