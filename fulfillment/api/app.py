"""
FastAPI application for starting and inspecting order and invoice
workflows.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from fulfillment.api.dependencies import (
    GatewayUnavailableError,
    get_settings,
    get_submission_use_case,
)
from fulfillment.api.requests import (
    StartBothWorkflowsRequest,
    StartWorkflowRequest,
)
from fulfillment.api.responses import (
    HealthCheckResponse,
    WorkflowListResponse,
    WorkflowResponse,
)
from fulfillment.config import Settings, load_settings
from fulfillment.definitions import DEFINITIONS
from fulfillment.dependencies import DependencyContainer
from fulfillment.domain import utcnow
from fulfillment.logging_setup import setup_logging
from fulfillment.usecase import WorkflowSubmissionUseCase

# Setup logging when module is imported
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = load_settings()
    container = DependencyContainer(settings, connect_attempts=1)
    app.state.settings = settings
    app.state.container = container
    logger.info(
        "API starting",
        extra={
            "backend": settings.backend,
            "engine_address": settings.engine_address,
            "terminate_enabled": settings.api_terminate_enabled,
        },
    )
    try:
        yield
    finally:
        await container.close()
        logger.info("API stopped")


app = FastAPI(title="Order & Invoice Workflow API", lifespan=lifespan)

PREFIX = "/api/temporal"


def _respond(response: BaseModel, success: bool) -> JSONResponse:
    return JSONResponse(
        status_code=200 if success else 400,
        content=response.model_dump(mode="json", by_alias=True),
    )


@app.exception_handler(GatewayUnavailableError)
async def gateway_unavailable_handler(
    request: Request, exc: GatewayUnavailableError
) -> JSONResponse:
    return _respond(
        WorkflowResponse(
            success=False,
            message=f"Workflow engine unavailable: {exc}",
        ),
        success=False,
    )


@app.post(f"{PREFIX}/start-order", response_model=WorkflowResponse)
async def start_order(
    request: StartWorkflowRequest,
    use_case: WorkflowSubmissionUseCase = Depends(get_submission_use_case),
) -> JSONResponse:
    """Start an OrderWorkflow on my-task-queue."""
    response = await use_case.start_order(request.order_id)
    return _respond(response, response.success)


@app.post(f"{PREFIX}/start-invoice", response_model=WorkflowResponse)
async def start_invoice(
    request: StartWorkflowRequest,
    use_case: WorkflowSubmissionUseCase = Depends(get_submission_use_case),
) -> JSONResponse:
    """Start an InvoiceWorkflow on invoice-task-queue.

    The invoice id is read from ``orderId``.
    """
    response = await use_case.start_invoice(request.order_id)
    return _respond(response, response.success)


@app.post(f"{PREFIX}/start-both", response_model=WorkflowResponse)
async def start_both(
    request: StartBothWorkflowsRequest,
    use_case: WorkflowSubmissionUseCase = Depends(get_submission_use_case),
) -> JSONResponse:
    response = await use_case.start_both(request.order_id, request.invoice_id)
    return _respond(response, response.success)


@app.get(f"{PREFIX}/workflows", response_model=WorkflowListResponse)
async def list_workflows(
    use_case: WorkflowSubmissionUseCase = Depends(get_submission_use_case),
) -> JSONResponse:
    response = await use_case.list_workflows()
    return _respond(response, response.success)


@app.delete(
    f"{PREFIX}/workflows/{{workflow_id}}", response_model=WorkflowResponse
)
async def terminate_workflow(
    workflow_id: str,
    reason: Optional[str] = None,
    use_case: WorkflowSubmissionUseCase = Depends(get_submission_use_case),
) -> JSONResponse:
    """
    Return the command that terminates ``workflow_id``.

    Terminates the run directly only when API_TERMINATE_ENABLED is set.
    """
    response = await use_case.terminate_workflow(workflow_id, reason)
    return _respond(response, response.success)


@app.get(f"{PREFIX}/health", response_model=HealthCheckResponse)
async def health_check(
    settings: Settings = Depends(get_settings),
) -> HealthCheckResponse:
    """Health check endpoint"""
    logger.debug("Health check requested")
    return HealthCheckResponse(
        status="Healthy",
        timestamp=utcnow(),
        temporal_server=settings.engine_address,
        available_workflows=[
            definition.workflow_type.value
            for definition in DEFINITIONS.values()
        ],
        available_activities=[
            definition.activity_group for definition in DEFINITIONS.values()
        ],
    )


def main() -> None:
    import uvicorn

    uvicorn.run(
        "fulfillment.api.app:app",
        host="0.0.0.0",
        port=8000,
        log_level="info",
    )


if __name__ == "__main__":
    main()
