# formiq/cli.py
"""
CLI interface for FormIQ.

Thin presentation layer over the database service and the workflow client.
"""

import asyncio
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.ext.asyncio import AsyncEngine

from formiq.config.loader import load_config
from formiq.config.schema import FormIQConfig
from formiq.db.engine import create_session_factory
from formiq.db.service import DatabaseService
from formiq.errors import FormIQError, NotFoundError
from formiq.logging_config import configure_logging
from formiq.workflow.client import WorkflowClient
from formiq.workflow.runs import RunState, WorkflowRunStore

app = typer.Typer(
    name="formiq",
    help="Turn a goal into focus questions and a generated project roadmap.",
    no_args_is_help=True,
)

console = Console()


def _run(coro):
    """Run async function from sync CLI context."""
    return asyncio.run(coro)


@dataclass
class _Services:
    engine: AsyncEngine
    db: DatabaseService
    workflows: WorkflowClient

    async def close(self) -> None:
        await self.engine.dispose()


async def _get_services(config: FormIQConfig) -> _Services:
    """Open the database directly (no workers needed for one-shot commands)."""
    from formiq.background.lifecycle import open_database

    engine, db = await open_database(config)
    store = WorkflowRunStore(create_session_factory(engine), namespace=config.workflow.namespace)
    return _Services(engine, db, WorkflowClient(store, config.workflow.task_queue))


def _state_color(state: str) -> str:
    """Return rich color for a run or project state."""
    colors = {
        "complete": "green",
        "ready": "green",
        "running": "yellow",
        "generating": "yellow",
        "queued": "cyan",
        "draft": "cyan",
        "awaiting_input": "magenta",
        "failed": "red",
        "interrupted": "red",
    }
    return colors.get(state, "white")


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Interface to bind (default: config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default: config or $PORT)"),
    no_worker: bool = typer.Option(
        False, "--no-worker", help="Don't run the workflow worker in-process"
    ),
):
    """Start the HTTP API (with the workflow worker embedded by default)."""
    import uvicorn

    from formiq.api.app import create_app

    config = load_config()
    configure_logging(config.log_level)
    if no_worker:
        config.workflow.embedded_worker = False

    uvicorn.run(
        create_app(config),
        host=host or config.server.host,
        port=port or config.server.port,
        log_config=None,
    )


@app.command()
def worker(
    once: bool = typer.Option(
        False, "--once", help="Process queued runs until the queue is empty, then exit"
    ),
):
    """Run the workflow worker. Ctrl+C to stop."""
    from formiq.background.lifecycle import ServerLifecycle

    config = load_config()
    configure_logging(config.log_level)

    async def _run_worker():
        lifecycle = ServerLifecycle(config)
        if once:
            await lifecycle.startup(start_workers=False)
            try:
                processed = await lifecycle.workflow_worker.drain()
            finally:
                await lifecycle.shutdown()
            typer.echo(f"Processed {processed} workflow run(s).")
            return

        await lifecycle.startup(start_workers=True, install_signal_handlers=True)
        typer.echo("Worker started. Processing queued runs... (Ctrl+C to stop)\n")
        await lifecycle.wait_closed()

    try:
        _run(_run_worker())
    except KeyboardInterrupt:
        pass


@app.command()
def seed():
    """Create the database schema and the default user."""
    config = load_config()

    async def _seed():
        services = await _get_services(config)
        await services.close()

    _run(_seed())
    typer.echo(f"Database ready, default user '{config.default_user_id}' exists.")


@app.command("start-roadmap")
def start_roadmap(
    project_id: str = typer.Argument(..., help="Project to generate a roadmap for"),
    user_id: str = typer.Option(None, "--user", "-u", help="Owner (default: config)"),
):
    """Queue (or resume) the roadmap workflow for a project."""
    from formiq.workflow.roadmap import start_or_resume_roadmap

    config = load_config()
    owner = user_id or config.default_user_id

    async def _start():
        services = await _get_services(config)
        try:
            if await services.db.get_project(owner, project_id) is None:
                raise NotFoundError(f"Project {project_id} not found for user {owner}")
            handle = await start_or_resume_roadmap(services.workflows, owner, project_id)
            return await handle.describe()
        finally:
            await services.close()

    try:
        run = _run(_start())
    except FormIQError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(
        f"Workflow {run.workflow_id} is {run.state.value}. "
        f"Run 'formiq worker' (or 'formiq serve') to process it."
    )


@app.command("projects")
def list_projects(
    user_id: str = typer.Option(None, "--user", "-u", help="Owner (default: config)"),
):
    """List a user's projects."""
    config = load_config()
    owner = user_id or config.default_user_id

    async def _list():
        services = await _get_services(config)
        try:
            return await services.db.get_projects_by_user_id(owner)
        finally:
            await services.close()

    projects = _run(_list())
    if not projects:
        typer.echo("No projects found.")
        return

    table = Table(title=f"Projects of {owner}")
    table.add_column("ID", no_wrap=True)
    table.add_column("STATUS")
    table.add_column("TITLE")
    for project in projects:
        status = project.status.value
        table.add_row(project.id, f"[{_state_color(status)}]{status}[/]", project.title)
    console.print(table)


@app.command("runs")
def list_runs(
    state: RunState = typer.Option(None, "--state", "-s", help="Only runs in this state"),
):
    """List workflow runs, newest first."""
    config = load_config()

    async def _list():
        services = await _get_services(config)
        try:
            return await services.workflows.list_runs(state)
        finally:
            await services.close()

    runs = _run(_list())
    if not runs:
        typer.echo("No workflow runs found.")
        return

    table = Table(title=f"Workflow runs ({config.workflow.namespace})")
    table.add_column("WORKFLOW ID", no_wrap=True)
    table.add_column("STATE")
    table.add_column("STEP")
    table.add_column("ATTEMPT", justify="right")
    for run in runs:
        value = run.state.value
        table.add_row(
            run.workflow_id,
            f"[{_state_color(value)}]{value}[/]",
            run.current_step or "-",
            str(run.attempt),
        )
    console.print(table)

    failed = [run for run in runs if run.error]
    for run in failed:
        console.print(f"[red]{run.workflow_id}:[/] {run.error.splitlines()[0]}")


@app.command()
def retry(workflow_id: str = typer.Argument(..., help="Workflow ID to retry")):
    """Re-queue a failed or interrupted workflow run."""
    config = load_config()

    async def _retry():
        services = await _get_services(config)
        try:
            return await services.workflows.retry(workflow_id)
        finally:
            await services.close()

    try:
        handle = _run(_retry())
    except FormIQError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Workflow {handle.workflow_id} re-queued. Run 'formiq worker' to process.")


if __name__ == "__main__":
    app()
