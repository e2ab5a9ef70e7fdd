"""
Minio implementation of WorkflowRunRepository.

Each workflow id's current run is one JSON object in the ``workflow-runs``
bucket, rewritten whole on every save. Closed runs that are replaced by a
new run with the same id are copied to ``workflow-run-history`` under
``<run_id>/<run_uid>`` before removal.

Minio offers no compare-and-set, so ``claim`` is a read-check-write and
two workers polling the same bucket can race for a run. Claims are
refreshed on every save, and the losing worker notices the foreign claim on
its next read and stops driving the run.
"""

import io
import logging
from datetime import datetime
from typing import List, Optional

from minio.error import S3Error

from fulfillment.domain import RunFilter, RunStatus, WorkflowRun, utcnow
from .client import MinioClient

logger = logging.getLogger(__name__)


class MinioWorkflowRunRepository:
    def __init__(
        self,
        client: MinioClient,
        bucket_name: str = "workflow-runs",
        history_bucket_name: str = "workflow-run-history",
    ) -> None:
        self.client = client
        self.bucket_name = bucket_name
        self.history_bucket_name = history_bucket_name
        for bucket in (self.bucket_name, self.history_bucket_name):
            self._ensure_bucket_exists(bucket)

    def _ensure_bucket_exists(self, bucket_name: str) -> None:
        try:
            if not self.client.bucket_exists(bucket_name=bucket_name):
                logger.info(
                    "Creating bucket", extra={"bucket_name": bucket_name}
                )
                self.client.make_bucket(bucket_name=bucket_name)
        except S3Error as e:
            logger.error(
                "Failed to create bucket",
                extra={"bucket_name": bucket_name, "error": str(e)},
            )
            raise

    def _read(self, bucket_name: str, object_name: str) -> Optional[bytes]:
        try:
            response = self.client.get_object(
                bucket_name=bucket_name, object_name=object_name
            )
        except S3Error as e:
            if getattr(e, "code", None) == "NoSuchKey":
                return None
            logger.error(
                "Error reading workflow run",
                extra={
                    "bucket_name": bucket_name,
                    "object_name": object_name,
                    "error": str(e),
                },
            )
            raise
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    def _write(
        self, bucket_name: str, object_name: str, run: WorkflowRun
    ) -> None:
        payload = run.model_dump_json().encode("utf-8")
        self.client.put_object(
            bucket_name=bucket_name,
            object_name=object_name,
            data=io.BytesIO(payload),
            length=len(payload),
            content_type="application/json",
        )

    async def get(self, run_id: str) -> Optional[WorkflowRun]:
        data = self._read(self.bucket_name, run_id)
        if data is None:
            logger.debug("Workflow run not found", extra={"run_id": run_id})
            return None
        return WorkflowRun.model_validate_json(data)

    async def save(self, run: WorkflowRun) -> None:
        self._write(self.bucket_name, run.run_id, run)
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
        runs = []
        for obj in self.client.list_objects(
            bucket_name=self.bucket_name, recursive=True
        ):
            data = self._read(self.bucket_name, obj.object_name)
            if data is None:
                # Archived between listing and reading.
                continue
            run = WorkflowRun.model_validate_json(data)
            if run_filter.matches(run):
                runs.append(run)
        return sorted(runs, key=lambda run: run.created_at)

    async def archive(self, run: WorkflowRun) -> None:
        self._write(
            self.history_bucket_name, f"{run.run_id}/{run.run_uid}", run
        )
        current = await self.get(run.run_id)
        if current is not None and current.run_uid == run.run_uid:
            self.client.remove_object(
                bucket_name=self.bucket_name, object_name=run.run_id
            )
        logger.info(
            "Workflow run archived",
            extra={"run_id": run.run_id, "run_uid": run.run_uid},
        )

    async def claim(
        self,
        run_id: str,
        run_uid: str,
        owner: str,
        stale_before: datetime,
    ) -> bool:
        run = await self.get(run_id)
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
        await self.save(run)
        return True
