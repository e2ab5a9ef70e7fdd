"""
Tests for the wiring checks on run stores and gateways.
"""

import pytest

from fulfillment.repos.memory import MemoryWorkflowRunRepository
from fulfillment.tests.repos.fake_client import FakeMinioClient
from fulfillment.validation import (
    RepositoryValidationError,
    ensure_workflow_gateway,
    ensure_workflow_run_repository,
)


def test_memory_store_is_a_run_repository() -> None:
    repo = MemoryWorkflowRunRepository()
    assert ensure_workflow_run_repository(repo) is repo


def test_raw_minio_client_is_not_a_run_repository() -> None:
    with pytest.raises(RepositoryValidationError) as exc_info:
        ensure_workflow_run_repository(FakeMinioClient())

    assert str(exc_info.value) == (
        "FakeMinioClient cannot be used as the workflow run store: "
        "it does not implement WorkflowRunRepository"
    )


def test_run_store_is_not_a_gateway() -> None:
    with pytest.raises(RepositoryValidationError, match="workflow gateway"):
        ensure_workflow_gateway(MemoryWorkflowRunRepository())
