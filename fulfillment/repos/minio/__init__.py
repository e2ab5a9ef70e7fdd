from .client import MinioClient
from .workflow_run import MinioWorkflowRunRepository

__all__ = ["MinioClient", "MinioWorkflowRunRepository"]
