"""
Dependency container shared by the API, the workers and the CLIs.

One container is created per process at startup from ``Settings`` and
closed at shutdown; it owns the Temporal client or the local engine, so no
module holds a global connection.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from minio import Minio
from temporalio.client import Client

from fulfillment.config import Settings
from fulfillment.engine import (
    ActivityExecutor,
    WorkflowEngine,
    create_default_registry,
)
from fulfillment.repos.memory import MemoryWorkflowRunRepository
from fulfillment.repos.minio import MinioWorkflowRunRepository
from fulfillment.repos.temporal.client import get_temporal_client_with_retries
from fulfillment.repos.temporal.gateway import TemporalWorkflowGateway
from fulfillment.repositories import WorkflowGateway, WorkflowRunRepository
from fulfillment.validation import (
    ensure_workflow_gateway,
    ensure_workflow_run_repository,
)

logger = logging.getLogger(__name__)


class DependencyContainer:
    """
    Dependency injection container with singleton lifecycle management.
    Always creates real clients; mocks are provided by test overrides.
    """

    def __init__(
        self,
        settings: Settings,
        dispatch: Optional[bool] = None,
        connect_attempts: Optional[int] = None,
    ) -> None:
        self.settings = settings
        self.dispatch = (
            settings.local.dispatch if dispatch is None else dispatch
        )
        # Callers that answer requests connect once and report failure.
        self.connect_attempts = (
            settings.temporal.connect_attempts
            if connect_attempts is None
            else connect_attempts
        )
        self._instances: Dict[str, Any] = {}

    async def get_or_create(
        self, key: str, factory: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Get or create a singleton instance."""
        if key not in self._instances:
            self._instances[key] = await factory()
        return self._instances[key]

    async def get_temporal_client(self) -> Client:
        client = await self.get_or_create(
            "temporal_client", self._create_temporal_client
        )
        return client  # type: ignore[no-any-return]

    async def _create_temporal_client(self) -> Client:
        temporal = self.settings.temporal
        return await get_temporal_client_with_retries(
            temporal.endpoint,
            namespace=temporal.namespace,
            attempts=self.connect_attempts,
            delay=temporal.connect_delay_seconds,
        )

    async def get_run_repository(self) -> WorkflowRunRepository:
        repo = await self.get_or_create(
            "run_repository", self._create_run_repository
        )
        return repo  # type: ignore[no-any-return]

    async def _create_run_repository(self) -> WorkflowRunRepository:
        store = self.settings.local.run_store
        logger.debug("Creating workflow run repository", extra={"store": store})
        if store == "minio":
            minio = self.settings.minio
            client = Minio(
                minio.endpoint,
                access_key=minio.access_key,
                secret_key=minio.secret_key,
                secure=minio.secure,
            )
            return ensure_workflow_run_repository(
                MinioWorkflowRunRepository(client)
            )
        return ensure_workflow_run_repository(MemoryWorkflowRunRepository())

    async def get_engine(self) -> WorkflowEngine:
        engine = await self.get_or_create("engine", self._create_engine)
        return engine  # type: ignore[no-any-return]

    async def _create_engine(self) -> WorkflowEngine:
        local = self.settings.local
        registry = create_default_registry(local.activity_delay_seconds)
        engine = WorkflowEngine(
            await self.get_run_repository(),
            ActivityExecutor(registry),
            dispatch=self.dispatch,
            claim_timeout=local.claim_timeout,
        )
        logger.info(
            "Local workflow engine created",
            extra={
                "owner": engine.owner,
                "dispatch": self.dispatch,
                "run_store": local.run_store,
            },
        )
        return engine

    async def get_gateway(self) -> WorkflowGateway:
        gateway = await self.get_or_create("gateway", self._create_gateway)
        return gateway  # type: ignore[no-any-return]

    async def _create_gateway(self) -> WorkflowGateway:
        if self.settings.backend == "local":
            return ensure_workflow_gateway(await self.get_engine())
        return ensure_workflow_gateway(
            TemporalWorkflowGateway(await self.get_temporal_client())
        )

    async def close(self) -> None:
        """Release what the container created."""
        engine = self._instances.pop("engine", None)
        if engine is not None:
            await engine.shutdown()
        self._instances.clear()
        logger.debug("Dependency container closed")
