"""
Pydantic models for API responses.
These define the contract between the API and external clients.
Field names are serialized in camelCase.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkflowResponse(_CamelModel):
    """Response for start and terminate requests"""

    success: bool
    message: str = ""
    workflow_id: str = ""
    task_queue: str = ""
    workflow_type: str = ""


class WorkflowInfo(_CamelModel):
    id: str
    status: str
    type: str
    start_time: Optional[datetime] = None


class WorkflowListResponse(_CamelModel):
    success: bool
    message: str = ""
    workflows: List[WorkflowInfo] = []
    count: int = 0


class HealthCheckResponse(_CamelModel):
    status: str
    timestamp: datetime
    temporal_server: str
    available_workflows: List[str]
    available_activities: List[str]
