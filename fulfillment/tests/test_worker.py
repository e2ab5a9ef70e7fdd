"""
Tests for the worker process entry points.
"""

import asyncio
import json
import logging
from datetime import timedelta
from typing import Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from fulfillment import worker
from fulfillment.config import Settings
from fulfillment.tests.factories import WorkflowRunFactory
from fulfillment.tests.repos.fake_client import FakeMinioClient
from fulfillment.workflow import OrderWorkflow


@pytest.fixture
def fake_minio() -> Iterator[FakeMinioClient]:
    fake = FakeMinioClient()
    with patch("fulfillment.dependencies.Minio", return_value=fake):
        yield fake


class TestTemporalWorker:
    @pytest.mark.asyncio
    async def test_hosts_queue_workflows_and_activities(self) -> None:
        client = MagicMock()
        stop = asyncio.Event()
        stop.set()
        with patch(
            "fulfillment.worker.get_temporal_client_with_retries",
            new=AsyncMock(return_value=client),
        ), patch("fulfillment.worker.Worker") as mock_worker_class:
            await worker.run_worker("my-task-queue", Settings(), stop)

        mock_worker_class.assert_called_once()
        args, kwargs = mock_worker_class.call_args
        assert args == (client,)
        assert kwargs["task_queue"] == "my-task-queue"
        assert kwargs["workflows"] == [OrderWorkflow]
        assert len(kwargs["activities"]) == 3
        assert kwargs["graceful_shutdown_timeout"] == timedelta(seconds=30)
        mock_worker_class.return_value.__aenter__.assert_awaited_once()
        mock_worker_class.return_value.__aexit__.assert_awaited_once()


class TestLocalWorker:
    @pytest.mark.asyncio
    async def test_memory_store_warns(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        caplog.set_level(logging.WARNING, logger="fulfillment.worker")
        stop = asyncio.Event()
        stop.set()

        await worker.run_worker(
            "invoice-task-queue", Settings(backend="local"), stop
        )

        assert any(
            "in-memory run store" in record.getMessage()
            for record in caplog.records
        )

    @pytest.mark.asyncio
    async def test_drives_runs_from_shared_store(
        self, fake_minio: FakeMinioClient
    ) -> None:
        settings = Settings.model_validate(
            {
                "backend": "local",
                "local": {
                    "run_store": "minio",
                    "poll_interval_seconds": 0.01,
                    "activity_delay_seconds": 0,
                },
            }
        )
        fake_minio.make_bucket("workflow-runs")
        run = WorkflowRunFactory(run_id="order-001")
        fake_minio.buckets["workflow-runs"]["order-001"] = (
            run.model_dump_json().encode()
        )
        stop = asyncio.Event()
        running = asyncio.create_task(
            worker.run_worker("my-task-queue", settings, stop)
        )

        runs = fake_minio.buckets["workflow-runs"]
        status = None
        for _ in range(500):
            stored = json.loads(runs["order-001"])
            status = stored["status"]
            if status == "Completed":
                break
            await asyncio.sleep(0.01)
        stop.set()
        await asyncio.wait_for(running, timeout=5)

        assert status == "Completed"
        assert [step["name"] for step in stored["steps"]] == [
            "ChargeCustomer",
            "ShipOrder",
            "SendConfirmationEmail",
        ]


class TestCommand:
    def test_runs_worker_for_task_queue(self) -> None:
        with patch(
            "fulfillment.worker.run_worker", new=AsyncMock()
        ) as mock_run_worker, patch("fulfillment.worker.setup_logging"):
            result = CliRunner().invoke(
                worker.main, ["--task-queue", "invoice-task-queue"]
            )

        assert result.exit_code == 0
        assert "Starting worker for invoice-task-queue..." in result.output
        assert (
            "Worker for invoice-task-queue stopped gracefully" in result.output
        )
        mock_run_worker.assert_awaited_once_with("invoice-task-queue")

    def test_unknown_task_queue_is_rejected(self) -> None:
        result = CliRunner().invoke(worker.main, ["--task-queue", "nowhere"])

        assert result.exit_code == 2
        assert "nowhere" in result.output
