"""
Memory implementation of WorkflowRunRepository.

Runs are kept in dictionaries and copied on the way in and out, so callers
never share mutable state with the store. Useful for tests and for a single
process running the API with in-process dispatch.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from fulfillment.domain import RunFilter, RunStatus, WorkflowRun, utcnow

logger = logging.getLogger(__name__)


class MemoryWorkflowRunRepository:
    def __init__(self) -> None:
        self.runs: Dict[str, WorkflowRun] = {}
        self.history: Dict[str, List[WorkflowRun]] = {}
        logger.debug("Initializing MemoryWorkflowRunRepository")

    async def get(self, run_id: str) -> Optional[WorkflowRun]:
        run = self.runs.get(run_id)
        return run.model_copy(deep=True) if run is not None else None

    async def save(self, run: WorkflowRun) -> None:
        self.runs[run.run_id] = run.model_copy(deep=True)
        logger.debug(
            "Workflow run saved",
            extra={
                "run_id": run.run_id,
                "status": run.status.value,
                "steps": len(run.steps),
            },
        )

    async def list(
        self, run_filter: Optional[RunFilter] = None
    ) -> List[WorkflowRun]:
        run_filter = run_filter or RunFilter()
        matching = [
            run.model_copy(deep=True)
            for run in self.runs.values()
            if run_filter.matches(run)
        ]
        return sorted(matching, key=lambda run: run.created_at)

    async def archive(self, run: WorkflowRun) -> None:
        archived = self.history.setdefault(run.run_id, [])
        if all(existing.run_uid != run.run_uid for existing in archived):
            archived.append(run.model_copy(deep=True))
        current = self.runs.get(run.run_id)
        if current is not None and current.run_uid == run.run_uid:
            del self.runs[run.run_id]

    async def claim(
        self,
        run_id: str,
        run_uid: str,
        owner: str,
        stale_before: datetime,
    ) -> bool:
        run = self.runs.get(run_id)
        if run is None or run.run_uid != run_uid:
            return False
        if run.status != RunStatus.RUNNING:
            return False
        if run.claimed_by not in (None, owner) and (
            run.claimed_at is not None and run.claimed_at >= stale_before
        ):
            return False
        run.claimed_by = owner
        run.claimed_at = utcnow()
        return True
