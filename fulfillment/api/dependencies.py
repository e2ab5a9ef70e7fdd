"""
Dependency injection for FastAPI endpoints.

The process-wide DependencyContainer is created by the application
lifespan and stored on ``app.state``; endpoints reach it only through the
functions below, which tests replace via ``app.dependency_overrides``.
"""

import logging

from fastapi import Depends, Request
from temporalio.service import RPCError

from fulfillment.config import Settings
from fulfillment.dependencies import DependencyContainer
from fulfillment.repositories import WorkflowGateway
from fulfillment.usecase import WorkflowSubmissionUseCase

logger = logging.getLogger(__name__)


class GatewayUnavailableError(Exception):
    """Raised when the workflow backend cannot be reached."""


def get_settings(request: Request) -> Settings:
    """FastAPI dependency for the loaded Settings."""
    return request.app.state.settings  # type: ignore[no-any-return]


def get_container(request: Request) -> DependencyContainer:
    return request.app.state.container  # type: ignore[no-any-return]


async def get_workflow_gateway(
    container: DependencyContainer = Depends(get_container),
) -> WorkflowGateway:
    """FastAPI dependency for the configured WorkflowGateway."""
    try:
        return await container.get_gateway()
    except (RPCError, RuntimeError, OSError) as e:
        logger.error(
            "Workflow backend unavailable",
            extra={
                "backend": container.settings.backend,
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
        )
        raise GatewayUnavailableError(str(e)) from e


async def get_submission_use_case(
    gateway: WorkflowGateway = Depends(get_workflow_gateway),
    settings: Settings = Depends(get_settings),
) -> WorkflowSubmissionUseCase:
    """FastAPI dependency for WorkflowSubmissionUseCase."""
    return WorkflowSubmissionUseCase(
        gateway,
        backend=settings.backend,
        terminate_enabled=settings.api_terminate_enabled,
        run_store=settings.local.run_store,
    )
