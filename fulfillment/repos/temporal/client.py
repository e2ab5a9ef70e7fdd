"""
Temporal client connection for workers and the request-serving processes.

Workers keep retrying while the server comes up; the API and the CLIs pass
``attempts=1`` so an unreachable server is reported straight away.
"""

import asyncio
import logging

from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.service import RPCError

logger = logging.getLogger(__name__)


async def get_temporal_client_with_retries(
    endpoint: str,
    namespace: str = "default",
    attempts: int = 10,
    delay: float = 5,
) -> Client:
    """Connect to ``namespace`` on ``endpoint`` with the pydantic converter.

    Workers and starters must agree on the data converter, so every
    client in this project is built here. The last failed attempt
    re-raises without sleeping.
    """
    logger.debug(
        "Attempting to connect to Temporal",
        extra={
            "endpoint": endpoint,
            "namespace": namespace,
            "max_attempts": attempts,
            "delay_seconds": delay,
        },
    )

    for attempt in range(attempts):
        try:
            client = await Client.connect(
                endpoint,
                data_converter=pydantic_data_converter,
                namespace=namespace,
            )
            logger.info(
                "Successfully connected to Temporal",
                extra={"endpoint": endpoint, "attempt": attempt + 1},
            )
            return client
        except (RPCError, RuntimeError) as e:
            logger.warning(
                "Failed to connect to Temporal",
                extra={
                    "endpoint": endpoint,
                    "attempt": attempt + 1,
                    "max_attempts": attempts,
                    "error": str(e),
                    "retry_in_seconds": delay,
                },
            )
            if attempt + 1 == attempts:
                logger.error(
                    "All connection attempts to Temporal failed",
                    extra={"endpoint": endpoint, "total_attempts": attempts},
                )
                raise
            await asyncio.sleep(delay)

    # Unreachable: the loop either returns or raises.
    raise RuntimeError("Failed to connect to Temporal after all attempts")
