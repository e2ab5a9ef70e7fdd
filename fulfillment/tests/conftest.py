"""
Shared fixtures: an in-memory run store, an activity registry whose
simulated I/O takes no time, and a sleep that records backoff delays
instead of waiting.
"""

from typing import Any, Callable, List

import pytest

from fulfillment.engine import (
    ActivityExecutor,
    ActivityRegistry,
    WorkflowEngine,
    create_default_registry,
)
from fulfillment.repos.memory import MemoryWorkflowRunRepository


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def memory_repo() -> MemoryWorkflowRunRepository:
    return MemoryWorkflowRunRepository()


@pytest.fixture
def registry() -> ActivityRegistry:
    return create_default_registry(delay_seconds=0)


@pytest.fixture
def make_engine(
    memory_repo: MemoryWorkflowRunRepository,
    recording_sleep: RecordingSleep,
) -> Callable[..., WorkflowEngine]:
    """Build engines over the shared memory store.

    Pass ``registry`` to swap in custom activities; other keyword
    arguments go to WorkflowEngine.
    """

    def _make(registry: Any = None, **kwargs: Any) -> WorkflowEngine:
        executor = ActivityExecutor(
            registry or create_default_registry(delay_seconds=0),
            sleep=recording_sleep,
        )
        kwargs.setdefault("owner", "test-engine")
        return WorkflowEngine(memory_repo, executor, **kwargs)

    return _make
