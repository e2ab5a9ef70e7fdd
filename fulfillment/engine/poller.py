"""
Polling worker for the local engine.

A worker process serves one task queue: it repeatedly asks its engine to
claim and drive Running runs of that queue that nobody else is driving.
When the stop event is set it stops polling and waits for in-flight
attempts to finish before returning.
"""

import asyncio
import logging

from fulfillment.engine.engine import WorkflowEngine

logger = logging.getLogger(__name__)


class LocalWorker:
    def __init__(
        self,
        engine: WorkflowEngine,
        task_queue: str,
        poll_interval: float = 1.0,
    ) -> None:
        self.engine = engine
        self.task_queue = task_queue
        self.poll_interval = poll_interval

    async def run(self, stop: asyncio.Event) -> None:
        logger.info(
            "Local worker polling",
            extra={
                "task_queue": self.task_queue,
                "owner": self.engine.owner,
                "poll_interval": self.poll_interval,
            },
        )
        while not stop.is_set():
            try:
                resumed = await self.engine.resume(self.task_queue)
            except Exception as e:
                logger.warning(
                    "Polling run store failed",
                    extra={"task_queue": self.task_queue, "error": str(e)},
                )
            else:
                if resumed:
                    logger.info(
                        "Picked up workflow runs",
                        extra={
                            "task_queue": self.task_queue,
                            "run_ids": resumed,
                        },
                    )
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        await self.engine.shutdown()
        logger.info(
            "Local worker stopped gracefully",
            extra={"task_queue": self.task_queue},
        )
