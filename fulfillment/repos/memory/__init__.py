from .workflow_run import MemoryWorkflowRunRepository

__all__ = ["MemoryWorkflowRunRepository"]
