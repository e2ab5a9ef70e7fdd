"""
Repository and gateway interfaces defined as Protocols.

- **WorkflowRunRepository** persists WorkflowRun records for the local
  engine. Each save replaces the whole record, so a reader always sees a
  run with a consistent step list.

- **WorkflowGateway** is the contract the submission surface (HTTP API,
  CLIs) depends on. The local WorkflowEngine and the Temporal client
  gateway both implement it, so callers do not know which backend executes
  the runs.

Gateway operations never raise for expected failures; they return
``Result`` values whose ``error.kind`` names what went wrong.
"""

from datetime import datetime
from typing import List, Optional, Protocol, runtime_checkable

from fulfillment.domain import Result, RunFilter, WorkflowRun, WorkflowType


@runtime_checkable
class WorkflowRunRepository(Protocol):
    """Stores the current record of each workflow id plus closed history."""

    async def get(self, run_id: str) -> Optional[WorkflowRun]:
        """Retrieve the current run for a workflow id.

        Returns:
            WorkflowRun if found, None otherwise
        """
        ...

    async def save(self, run: WorkflowRun) -> None:
        """Persist the full run record, replacing any previous version.

        Implementation Notes:
        - Must be idempotent: saving the same record twice is safe
        """
        ...

    async def list(
        self, run_filter: Optional[RunFilter] = None
    ) -> List[WorkflowRun]:
        """List current runs matching the filter, oldest first."""
        ...

    async def archive(self, run: WorkflowRun) -> None:
        """Move a closed run to history so its id can be reused."""
        ...

    async def claim(
        self,
        run_id: str,
        run_uid: str,
        owner: str,
        stale_before: datetime,
    ) -> bool:
        """Claim a Running run for ``owner``.

        The claim succeeds when the run is unclaimed, already held by
        ``owner``, or held by a claim refreshed before ``stale_before``.

        Returns:
            True if ``owner`` now holds the claim
        """
        ...


@runtime_checkable
class WorkflowGateway(Protocol):
    """Start, inspect and terminate workflow runs on some backend."""

    async def start(
        self,
        run_id: str,
        workflow_type: WorkflowType,
        input: Optional[str] = None,
    ) -> Result[WorkflowRun]:
        """Start a run; fails with DuplicateRunId while one is Running."""
        ...

    async def get(self, run_id: str) -> Result[WorkflowRun]:
        """Snapshot of a run; fails with NotFound."""
        ...

    async def terminate(
        self, run_id: str, reason: Optional[str] = None
    ) -> Result[WorkflowRun]:
        """Terminate a Running run; fails with NotFound or InvalidState."""
        ...

    async def list_runs(
        self, run_filter: Optional[RunFilter] = None
    ) -> Result[List[WorkflowRun]]:
        """List run summaries."""
        ...
