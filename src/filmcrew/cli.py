"""Command line interface for filmcrew."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .agents.orchestrator import Orchestrator
from .agents.registry import AgentRegistry
from .config import ProjectConfig
from .errors import ConfigError
from .logging_config import setup_logging
from .project import build_executor, build_orchestrator, enqueue_config_tasks
from .tasks.base import ExecutionReport, Plan, Task

app = typer.Typer(help="Film production task orchestrator")
console = Console()

STATUS_STYLES = {
    "pending": "[yellow]pending",
    "blocked": "[magenta]blocked",
    "running": "[cyan]running...",
    "completed": "[green]completed",
    "failed": "[red]failed",
    "cancelled": "[dim]cancelled",
}


def _load_config(config_path: Path) -> ProjectConfig:
    try:
        return ProjectConfig.from_file(config_path)
    except ConfigError as exc:
        console.print(f"[bold red]Invalid config:[/] {exc}")
        raise typer.Exit(code=1) from exc


def _default_orchestrator() -> Orchestrator:
    return Orchestrator(AgentRegistry().load_all())


def _render_plan(plan: Plan) -> None:
    table = Table(title=f"Plan {plan.id}", show_lines=True)
    table.add_column("Phase")
    table.add_column("Task")
    table.add_column("Agent")
    table.add_column("Action")
    table.add_column("Priority", justify="right")
    table.add_column("Depends on", justify="right")
    for phase in plan.phases:
        for task in phase.tasks:
            table.add_row(
                phase.name, task.name, task.agent_id or "", task.action or "", str(task.priority), str(len(task.dependencies))
            )
    console.print(table)


def _render_report(report: ExecutionReport) -> None:
    table = Table(title="Task outcomes", show_lines=True)
    table.add_column("Task ID")
    table.add_column("Agent")
    table.add_column("Status")
    table.add_column("Output")
    for outcome in report.results:
        task = outcome.task
        output = str(outcome.result) if outcome.success else str(outcome.error)
        table.add_row(task.id, task.agent_id or "", STATUS_STYLES[task.status.value], output)
    console.print(table)
    stats = ", ".join(f"{key}={value}" for key, value in report.stats.items())
    console.print(f"[bold]Stats:[/] {stats}")


@app.command()
def run(
    config_path: Path = typer.Argument(..., help="Path to YAML configuration"),
    parallel: bool = typer.Option(False, help="Dispatch independent tasks concurrently"),
    log_level: Optional[str] = typer.Option(None, help="Override the configured log level"),
) -> None:
    """Enqueue the tasks in the given config file and run them to completion."""

    config = _load_config(config_path)
    setup_logging(log_level or config.logging.level)
    try:
        orchestrator = build_orchestrator(config)
        executor = build_executor(config)
    except ConfigError as exc:
        console.print(f"[bold red]Invalid config:[/] {exc}")
        raise typer.Exit(code=1) from exc
    console.print(f"[bold green]Running project[/] {config.name}")
    tasks = enqueue_config_tasks(config, orchestrator)

    progress = Progress(
        SpinnerColumn(style="cyan"),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("{task.fields[status]}"),
        console=console,
        transient=False,
    )
    with progress:
        rows = {
            task.id: progress.add_task(f"{task.id} - {task.name}", status=STATUS_STYLES[task.status.value])
            for task in tasks
        }

        def on_event(event: str, task: Optional[Task]) -> None:
            if task is not None and task.id in rows:
                progress.update(rows[task.id], status=STATUS_STYLES[task.status.value])

        unsubscribe = orchestrator.queue.on("*", on_event)
        try:
            if parallel:
                report = orchestrator.execute_parallel(executor, max_workers=config.orchestrator.max_workers)
            else:
                report = orchestrator.execute(executor)
        finally:
            unsubscribe()

    _render_report(report)
    if report.failed:
        raise typer.Exit(code=1)


@app.command()
def plan(
    description: str = typer.Argument(..., help="What the film is about"),
    project_name: Optional[str] = typer.Option(None, help="Name for the new project"),
    chain_phases: bool = typer.Option(False, help="Make each phase depend on the previous one"),
) -> None:
    """Show the production plan generated for a film request."""

    orchestrator = _default_orchestrator()
    _render_plan(orchestrator.create_plan(description, project_name, chain_phases=chain_phases))


@app.command()
def decompose(message: str = typer.Argument(..., help="Free-text request")) -> None:
    """Show how a request would be split into tasks."""

    orchestrator = _default_orchestrator()
    for task in orchestrator.decompose_request(message):
        console.print(f"- {task.name} -> {task.agent_id}.{task.action} (priority {task.priority})")


@app.command()
def agents(
    path: list[Path] = typer.Option([], "--path", help="Extra directory of agent Markdown files"),
) -> None:
    """List the available agents."""

    registry = AgentRegistry(path).load_all()
    table = Table(title="Agents")
    table.add_column("ID")
    table.add_column("Mode")
    table.add_column("Priority", justify="right")
    table.add_column("Tools")
    table.add_column("Description")
    for agent in registry.get_all():
        tools = "all" if agent.tools is None else ", ".join(agent.tools)
        table.add_row(agent.id, agent.mode, str(agent.priority), tools, agent.description)
    console.print(table)


if __name__ == "__main__":  # pragma: no cover
    app()
