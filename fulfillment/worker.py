"""
Worker process serving one task queue.

With the temporal backend it hosts the queue's workflows and activities in
a ``temporalio`` Worker. With the local backend it polls the run store and
drives the queue's runs through the self-hosted engine. Either way SIGINT
or SIGTERM stops polling and the process exits once in-flight activity
attempts have finished.
"""

import asyncio
import logging
import signal
from typing import Optional

import click
from temporalio.worker import Worker

from fulfillment.config import Settings, load_settings
from fulfillment.definitions import TASK_QUEUES, definitions_for_task_queue
from fulfillment.dependencies import DependencyContainer
from fulfillment.engine import LocalWorker
from fulfillment.logging_setup import setup_logging
from fulfillment.repos.temporal.activities import activities_for_task_queue
from fulfillment.repos.temporal.client import get_temporal_client_with_retries
from fulfillment.workflow import workflows_for_task_queue

logger = logging.getLogger(__name__)


def install_signal_handlers(stop: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)


async def run_temporal_worker(
    settings: Settings, task_queue: str, stop: asyncio.Event
) -> None:
    temporal = settings.temporal
    client = await get_temporal_client_with_retries(
        temporal.endpoint,
        namespace=temporal.namespace,
        attempts=temporal.connect_attempts,
        delay=temporal.connect_delay_seconds,
    )

    workflows = workflows_for_task_queue(task_queue)
    activities = activities_for_task_queue(
        task_queue, settings.local.activity_delay_seconds
    )
    graceful_timeout = max(
        definition.options.start_to_close_timeout
        for definition in definitions_for_task_queue(task_queue).values()
    )

    logger.info(
        "Creating Temporal worker",
        extra={
            "task_queue": task_queue,
            "workflows": [w.__name__ for w in workflows],
            "activity_count": len(activities),
            "data_converter_type": type(client.data_converter).__name__,
        },
    )

    worker = Worker(
        client,
        task_queue=task_queue,
        workflows=workflows,
        activities=activities,
        graceful_shutdown_timeout=graceful_timeout,
    )
    async with worker:
        logger.info("Worker polling", extra={"task_queue": task_queue})
        await stop.wait()
        logger.info(
            "Stopping worker, waiting for in-flight activities",
            extra={"task_queue": task_queue},
        )
    logger.info("Worker stopped gracefully", extra={"task_queue": task_queue})


async def run_local_worker(
    settings: Settings, task_queue: str, stop: asyncio.Event
) -> None:
    if settings.local.run_store == "memory":
        logger.warning(
            "Local worker uses an in-memory run store; it only sees runs "
            "started in this process",
            extra={"task_queue": task_queue},
        )
    container = DependencyContainer(settings, dispatch=False)
    try:
        engine = await container.get_engine()
        await LocalWorker(
            engine,
            task_queue,
            poll_interval=settings.local.poll_interval_seconds,
        ).run(stop)
    finally:
        await container.close()


async def run_worker(
    task_queue: str,
    settings: Optional[Settings] = None,
    stop: Optional[asyncio.Event] = None,
) -> None:
    """Run a worker for ``task_queue`` until ``stop`` is set.

    Without an explicit ``stop`` event one is created and set by SIGINT or
    SIGTERM.
    """
    settings = settings or load_settings()
    if stop is None:
        stop = asyncio.Event()
        install_signal_handlers(stop)

    logger.info(
        "Starting worker",
        extra={
            "task_queue": task_queue,
            "backend": settings.backend,
            "engine_address": settings.engine_address,
        },
    )
    if settings.backend == "local":
        await run_local_worker(settings, task_queue, stop)
    else:
        await run_temporal_worker(settings, task_queue, stop)


@click.command()
@click.option(
    "--task-queue",
    required=True,
    type=click.Choice(list(TASK_QUEUES)),
    help="Task queue to serve",
)
def main(task_queue: str) -> None:
    """Run a workflow worker for one task queue."""
    setup_logging()
    click.echo(f"Starting worker for {task_queue}...")
    asyncio.run(run_worker(task_queue))
    click.echo(f"Worker for {task_queue} stopped gracefully")


if __name__ == "__main__":
    main()
