"""Command line interface for running stagewise workers."""

from __future__ import annotations

import asyncio
import importlib
import logging
import sys
import uuid
from pathlib import Path
from typing import Optional

import typer

from stagewise import Workflow, get_client, load_config
from stagewise.errors import StagewiseError

app = typer.Typer(help="CLI for stagewise workflows")

# Command groups
worker_app = typer.Typer(help="Commands for running workers")
workflow_app = typer.Typer(help="Commands for inspecting and starting workflows")
types_app = typer.Typer(help="Commands for the registered type catalogue")

app.add_typer(worker_app, name="worker")
app.add_typer(workflow_app, name="workflow")
app.add_typer(types_app, name="types")


def _load_workflow(target: str) -> Workflow:
    """Import ``module:attribute`` and return the workflow it names."""
    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        typer.secho("Target must look like 'module:attribute'", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        typer.secho(f"Could not import {module_name}: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    workflow = getattr(module, attribute, None)
    if not isinstance(workflow, Workflow):
        typer.secho(f"{target} is not a Workflow", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    return workflow


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, help="Path to a stagewise.yaml file"),
) -> None:
    """stagewise CLI entry point."""
    settings = load_config(str(config) if config else None)
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = settings


@worker_app.command("start")
def worker_start(
    ctx: typer.Context,
    target: str,
    client: Optional[str] = typer.Option(None, help="Client backend (inmemory, swf)"),
    lifespan: Optional[float] = None,
) -> None:
    """
    Register a workflow's types and run its decision and activity workers.

    Args:
        target: Workflow to run, as module:attribute
        client: Client backend overriding configuration
        lifespan: Worker timeout in seconds (default: run indefinitely)

    Example:
        stagewise worker start shop.workflows:order
        stagewise worker start shop.workflows:order --client swf --lifespan 300
    """
    workflow = _load_workflow(target)
    settings = ctx.obj
    orchestration_client = get_client(client, settings)

    async def run() -> None:
        tasks = await workflow.start(
            orchestration_client, settings.worker, lifespan=lifespan
        )
        await asyncio.gather(*tasks)

    typer.echo(f"Starting workers for {workflow.name} in {workflow.domain}")
    try:
        asyncio.run(run())
    except StagewiseError as e:
        typer.secho(f"Failed to start workers: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)


@workflow_app.command("describe")
def workflow_describe(target: str) -> None:
    """
    Show the stages of a workflow in execution order.

    Example:
        stagewise workflow describe shop.workflows:order
        # Output: Order 1 (domain shop, task list OrderTaskList)
        #         0  Validate  Order.0  ValidateTaskList
    """
    workflow = _load_workflow(target)
    typer.echo(
        f"{workflow.name} {workflow.version} "
        f"(domain {workflow.domain}, task list {workflow.task_list})"
    )
    if not workflow.stages:
        typer.echo("No stages")
        return
    for stage in workflow.stages:
        typer.echo(
            f"{stage.id}\t{stage.activity.name}\t{stage.version}\t{stage.activity.task_list}"
        )


@workflow_app.command("start")
def workflow_start(
    ctx: typer.Context,
    target: str,
    workflow_id: Optional[str] = typer.Option(None, help="Execution id (default: random)"),
    input: Optional[str] = typer.Option(None, "--input", help="Workflow input"),
    client: Optional[str] = typer.Option(None, help="Client backend (inmemory, swf)"),
) -> None:
    """Start an execution of a workflow's registered type."""
    workflow = _load_workflow(target)
    orchestration_client = get_client(client, ctx.obj)
    workflow_id = workflow_id or f"{workflow.name}-{uuid.uuid4().hex[:12]}"
    try:
        run_id = asyncio.run(
            orchestration_client.start_workflow_execution(
                workflow.domain,
                workflow_id,
                workflow.name,
                workflow.version,
                input=input,
                task_list=workflow.task_list,
            )
        )
    except StagewiseError as e:
        typer.secho(f"Failed to start workflow: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    typer.echo(f"{workflow_id}\t{run_id}")


@types_app.command("list")
def types_list(
    ctx: typer.Context,
    domain: str,
    client: Optional[str] = typer.Option(None, help="Client backend (inmemory, swf)"),
) -> None:
    """List registered activity types in a domain."""
    orchestration_client = get_client(client, ctx.obj)
    try:
        types = asyncio.run(orchestration_client.list_activity_types(domain))
    except StagewiseError as e:
        typer.secho(f"Failed to list types: {e}", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    if not types:
        typer.echo("No activity types registered")
        return
    for name, version in sorted(types):
        typer.echo(f"{name}\t{version}")


if __name__ == "__main__":
    app()
