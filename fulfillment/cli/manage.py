#!/usr/bin/env python3
"""
Workflow management CLI: list, describe and terminate runs on the
configured backend.

``terminate`` is the command the API's DELETE endpoint points operators to
when the local backend is in use.
"""

import asyncio
import logging
import sys
from typing import Awaitable, Callable, Optional, cast

import click

from fulfillment.config import Settings, load_settings
from fulfillment.dependencies import DependencyContainer
from fulfillment.domain import (
    RunFilter,
    RunStatus,
    WorkflowRun,
    WorkflowType,
)
from fulfillment.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _format_run(run: WorkflowRun) -> str:
    started = run.created_at.strftime("%Y-%m-%d %H:%M:%S")
    return (
        f"{run.run_id:<24} {run.workflow_type.value:<16} "
        f"{run.status.value:<11} {started}"
    )


def _echo_details(run: WorkflowRun) -> None:
    click.echo(f"Workflow ID: {run.run_id}")
    click.echo(f"Run:         {run.run_uid}")
    click.echo(f"Type:        {run.workflow_type.value}")
    click.echo(f"Task queue:  {run.task_queue}")
    click.echo(f"Status:      {run.status.value}")
    click.echo(f"Started:     {run.created_at.isoformat()}")
    if run.closed_at is not None:
        click.echo(f"Closed:      {run.closed_at.isoformat()}")
    if run.claimed_by:
        click.echo(f"Claimed by:  {run.claimed_by}")
    if run.failure is not None:
        click.echo(
            f"Failure:     {run.failure.message} "
            f"(last error: {run.failure.last_error_kind}, "
            f"attempts: {run.failure.attempts})"
        )
    if run.termination_reason:
        click.echo(f"Reason:      {run.termination_reason}")
    if run.steps:
        click.echo("Steps:")
        for i, record in enumerate(run.steps, 1):
            line = (
                f"  {i}. {record.name} {record.status.value} "
                f"(attempt {record.attempt})"
            )
            if record.error_kind:
                line += f" {record.error_kind}"
            click.echo(line)


async def _list(settings: Settings, run_filter: RunFilter) -> int:
    container = DependencyContainer(
        settings, dispatch=False, connect_attempts=1
    )
    try:
        gateway = await container.get_gateway()
        result = await gateway.list_runs(run_filter)
    finally:
        await container.close()
    if result.error is not None:
        click.echo(
            f"Failed to retrieve workflow list: {result.error.message}",
            err=True,
        )
        return 1
    runs = result.value or []
    if not runs:
        click.echo("No workflows found.")
        return 0
    for run in runs:
        click.echo(_format_run(run))
    click.echo(f"\n{len(runs)} workflow(s)")
    return 0


async def _describe(settings: Settings, workflow_id: str) -> int:
    container = DependencyContainer(
        settings, dispatch=False, connect_attempts=1
    )
    try:
        gateway = await container.get_gateway()
        result = await gateway.get(workflow_id)
    finally:
        await container.close()
    if result.error is not None:
        click.echo(result.error.message, err=True)
        return 1
    _echo_details(cast(WorkflowRun, result.value))
    return 0


async def _terminate(
    settings: Settings, workflow_id: str, reason: Optional[str]
) -> int:
    container = DependencyContainer(
        settings, dispatch=False, connect_attempts=1
    )
    try:
        gateway = await container.get_gateway()
        result = await gateway.terminate(workflow_id, reason)
    finally:
        await container.close()
    if result.error is not None:
        click.echo(
            f"Failed to terminate workflow: {result.error.message}",
            err=True,
        )
        return 1
    click.echo(f"Workflow terminated: {workflow_id}")
    return 0


def _run(
    config_path: Optional[str],
    command: Callable[[Settings], Awaitable[int]],
) -> None:
    setup_logging()
    try:
        settings = load_settings(config_path)
        local_memory = (
            settings.backend == "local"
            and settings.local.run_store == "memory"
        )
        if local_memory:
            click.echo(
                "⚠️  RUN_STORE=memory: runs started by other processes "
                "are not visible here; set RUN_STORE=minio to share them",
                err=True,
            )
        exit_code = asyncio.run(command(settings))
    except Exception as e:
        logger.error(f"Command failed: {str(e)}", exc_info=True)
        click.echo(f"Command failed: {str(e)}", err=True)
        sys.exit(1)
    sys.exit(exit_code)


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to a YAML config file",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str]) -> None:
    """Manage order and invoice workflow runs."""
    ctx.obj = {"config_path": config_path}


@cli.command("list")
@click.option(
    "--status",
    type=click.Choice([status.value for status in RunStatus]),
    default=None,
    help="Only show runs with this status",
)
@click.option(
    "--type",
    "workflow_type",
    type=click.Choice([workflow_type.value for workflow_type in WorkflowType]),
    default=None,
    help="Only show runs of this workflow type",
)
@click.option("--task-queue", default=None, help="Only show this task queue")
@click.pass_context
def list_command(
    ctx: click.Context,
    status: Optional[str],
    workflow_type: Optional[str],
    task_queue: Optional[str],
) -> None:
    """List workflow runs."""
    run_filter = RunFilter(
        status=RunStatus(status) if status else None,
        workflow_type=WorkflowType(workflow_type) if workflow_type else None,
        task_queue=task_queue,
    )
    _run(
        ctx.obj["config_path"],
        lambda settings: _list(settings, run_filter),
    )


@cli.command()
@click.argument("workflow_id")
@click.pass_context
def describe(ctx: click.Context, workflow_id: str) -> None:
    """Show one workflow run and its steps."""
    _run(
        ctx.obj["config_path"],
        lambda settings: _describe(settings, workflow_id),
    )


@cli.command()
@click.argument("workflow_id")
@click.option("--reason", default=None, help="Reason recorded on the run")
@click.pass_context
def terminate(
    ctx: click.Context, workflow_id: str, reason: Optional[str]
) -> None:
    """Terminate a running workflow."""
    _run(
        ctx.obj["config_path"],
        lambda settings: _terminate(settings, workflow_id, reason),
    )


if __name__ == "__main__":
    cli()
