#!/usr/bin/env python3
"""
Workflow starter.

Prompts for an order id and an invoice id, starts an OrderWorkflow and an
InvoiceWorkflow through the configured backend, and reminds the operator
to start one worker per task queue.
"""

import asyncio
import logging
import sys
from typing import List, Optional, cast

import click

from fulfillment.config import Settings, load_settings
from fulfillment.definitions import INVOICE_TASK_QUEUE, ORDER_TASK_QUEUE
from fulfillment.dependencies import DependencyContainer
from fulfillment.domain import RunStatus, WorkflowRun
from fulfillment.logging_setup import setup_logging
from fulfillment.usecase import WorkflowSubmissionUseCase

logger = logging.getLogger(__name__)

WORKER_COMMANDS = [
    f"fulfillment-worker --task-queue {ORDER_TASK_QUEUE}",
    f"fulfillment-worker --task-queue {INVOICE_TASK_QUEUE}",
]


def _connected_message(settings: Settings) -> str:
    if settings.backend == "temporal":
        return "✅ Connected to Temporal server successfully"
    return f"✅ Local workflow engine ready ({settings.local.run_store} store)"


async def _wait_for_runs(
    container: DependencyContainer, run_ids: List[str], timeout: float
) -> bool:
    engine = await container.get_engine()
    all_completed = True
    for run_id in run_ids:
        result = await engine.wait(run_id, timeout=timeout)
        if result.error is not None:
            click.echo(f"⚠️  {run_id}: {result.error.message}")
            all_completed = False
            continue
        run = cast(WorkflowRun, result.value)
        steps = ", ".join(
            f"{record.name}={record.status.value}" for record in run.steps
        )
        click.echo(f"🏁 {run_id}: {run.status.value} [{steps}]")
        if run.status != RunStatus.COMPLETED:
            all_completed = False
    return all_completed


async def _main(
    order_id: str,
    invoice_id: str,
    wait: bool,
    timeout: float,
    settings: Settings,
) -> int:
    click.echo("🚀 Workflow Starter Application")
    click.echo("=" * 42)

    waiting = wait and settings.backend == "local"
    container = DependencyContainer(
        settings, dispatch=waiting, connect_attempts=1
    )
    try:
        use_case = WorkflowSubmissionUseCase(
            await container.get_gateway(), backend=settings.backend
        )
        click.echo(_connected_message(settings))

        click.echo("\n📋 Starting workflows...")
        click.echo(f"🛒 Starting Order workflow: {order_id}")
        response = await use_case.start_order(order_id)
        if not response.success:
            click.echo(f"❌ {response.message}", err=True)
            return 1

        click.echo(f"📄 Starting Invoice workflow: {invoice_id}")
        response = await use_case.start_invoice(invoice_id)
        if not response.success:
            click.echo(f"❌ {response.message}", err=True)
            return 1

        click.echo("\n✅ Workflows started successfully!")

        if waiting:
            click.echo("\n⏳ Waiting for workflows to finish...")
            completed = await _wait_for_runs(
                container, [order_id, invoice_id], timeout
            )
            return 0 if completed else 1

        if wait:
            click.echo(
                "--wait only applies to the local backend; use "
                "'fulfillment-workflows describe' to follow progress"
            )
        if settings.backend == "local" and settings.local.run_store == "memory":
            click.echo(
                "⚠️  Runs in the in-memory store are lost when this process "
                "exits; use --wait or RUN_STORE=minio"
            )
        click.echo("📝 Remember to start the workers:")
        for number, command in enumerate(WORKER_COMMANDS, 1):
            click.echo(f"   Terminal {number}: {command}")
        return 0
    finally:
        await container.close()


@click.command()
@click.option(
    "--order-id",
    prompt="Enter Order ID (e.g., order-001)",
    default="order-001",
    show_default=False,
    help="Workflow id of the Order run",
)
@click.option(
    "--invoice-id",
    prompt="Enter Invoice ID (e.g., invoice-001)",
    default="invoice-001",
    show_default=False,
    help="Workflow id of the Invoice run",
)
@click.option(
    "--wait",
    is_flag=True,
    default=False,
    help="Drive both runs in this process and wait for them (local "
    "backend only)",
)
@click.option(
    "--timeout",
    default=60.0,
    type=float,
    help="Seconds to wait for each run with --wait",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to a YAML config file",
)
def main(
    order_id: str,
    invoice_id: str,
    wait: bool,
    timeout: float,
    config_path: Optional[str],
) -> None:
    """Start an Order and an Invoice workflow."""
    setup_logging()
    try:
        settings = load_settings(config_path)
        exit_code = asyncio.run(
            _main(
                order_id.strip() or "order-001",
                invoice_id.strip() or "invoice-001",
                wait,
                timeout,
                settings,
            )
        )
    except Exception as e:
        logger.error(f"Starting workflows failed: {str(e)}", exc_info=True)
        click.echo(f"❌ Starting workflows failed: {str(e)}", err=True)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
