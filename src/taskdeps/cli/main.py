"""Main CLI entrypoint for taskdeps."""

import json
import logging
import sys
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Iterator, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from taskdeps import __version__
from taskdeps.core.config import TaskDepsConfig
from taskdeps.core.constants import VALID_LOG_LEVELS, get_taskdeps_root
from taskdeps.core.exceptions import TaskDepsError
from taskdeps.tasks import (
    DependencyClosure,
    DependencyGraph,
    Task,
    TaskCache,
    TaskStore,
)

logger = logging.getLogger(__name__)

console = Console()
err_console = Console(stderr=True)

# Create main app
app = typer.Typer(
    name="taskdeps",
    help="Task dependency graph manager",
    no_args_is_help=True,
)

task_app = typer.Typer(help="Manage tasks", no_args_is_help=True)
deps_app = typer.Typer(help="Manage task dependencies", no_args_is_help=True)

app.add_typer(task_app, name="task")
app.add_typer(deps_app, name="deps")


@dataclass
class CliState:
    """Options shared by every command."""

    root: Path
    config: TaskDepsConfig


# =============================================================================
# Setup
# =============================================================================

def _configure_logging(level: str, fmt: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=fmt,
        stream=sys.stderr,
    )


@app.callback()
def main(
    ctx: typer.Context,
    root: Annotated[
        Optional[Path],
        typer.Option("--root", "-r", help="Project directory holding .taskdeps"),
    ] = None,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", help="Logging level: debug, info, warning, error"),
    ] = None,
) -> None:
    """Task dependency graph manager."""
    base = root or Path.cwd()

    try:
        config = TaskDepsConfig.load(base)
    except TaskDepsError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    level = (log_level or config.logging.level).lower()
    if level not in VALID_LOG_LEVELS:
        err_console.print(f"[red]Error: Invalid log level '{escape(level)}'[/red]")
        err_console.print(f"Valid levels: {', '.join(VALID_LOG_LEVELS)}")
        raise typer.Exit(1)

    _configure_logging(level, config.logging.format)
    ctx.obj = CliState(root=base, config=config)


@contextmanager
def _open_graph(ctx: typer.Context) -> Iterator[DependencyGraph]:
    state: CliState = ctx.obj
    store = TaskStore(
        get_taskdeps_root(state.root),
        use_file_storage=state.config.store.use_file_storage,
        db_name=state.config.store.db_name,
    )
    cache = None
    if state.config.cache.enabled:
        cache = TaskCache(
            ttl_seconds=state.config.cache.ttl_seconds,
            check_period_seconds=state.config.cache.check_period_seconds,
        )
    try:
        store.initialize()
        yield DependencyGraph(store, cache=cache)
    except TaskDepsError as e:
        err_console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    finally:
        store.close()


def _print_task(task: Task) -> None:
    console.print(f"[bold]Task:[/bold] {task.id}")
    console.print(f"  Title: {escape(task.title)}")
    if task.description:
        console.print(f"  Description: {escape(task.description)}")
    console.print(f"  Status: {task.status.value}")
    console.print(f"  Priority: {task.priority.value}")
    if task.due_date:
        console.print(f"  Due: {task.due_date.isoformat()}")
    deps = ", ".join(task.dependencies) if task.dependencies else "none"
    console.print(f"  Depends on: {deps}")


def _closure_tree(closure: DependencyClosure) -> Tree:
    tree = Tree(f"[bold]{escape(closure.task_title)}[/bold] ({closure.task_id})")
    for level, deps in sorted(closure.dependencies_by_level.items()):
        branch = tree.add(f"Level {level}")
        for dep in deps:
            status = escape(f"[{dep['status']}]")
            branch.add(f"{escape(dep['title'])} ({dep['id']}) {status}", highlight=False)
    return tree


# =============================================================================
# Task Commands
# =============================================================================

@task_app.command("create")
def task_create(
    ctx: typer.Context,
    title: Annotated[str, typer.Option("--title", "-t", help="Task title")],
    description: Annotated[str, typer.Option("--desc", "-d", help="Description")] = "",
    due: Annotated[
        Optional[str], typer.Option("--due", help="Due date (ISO 8601)")
    ] = None,
    priority: Annotated[
        Optional[str], typer.Option("--priority", "-p", help="Priority: low, medium, high")
    ] = None,
    status: Annotated[
        Optional[str], typer.Option("--status", "-s", help="Status: todo, in-progress, completed")
    ] = None,
    depends_on: Annotated[
        Optional[list[str]],
        typer.Option("--depends-on", "-D", help="ID of a task this one depends on (repeatable)"),
    ] = None,
) -> None:
    """Create a new task."""
    with _open_graph(ctx) as graph:
        task = graph.create_task_with_dependencies(
            {
                "title": title,
                "description": description,
                "due_date": due,
                "priority": priority,
                "status": status,
            },
            depends_on or [],
        )

    console.print(f"[green]Created task:[/green] {task.id}")


@task_app.command("show")
def task_show(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task ID")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show task details."""
    with _open_graph(ctx) as graph:
        task = graph.get_task(task_id)

    if json_output:
        console.print_json(json.dumps(task.to_dict()))
        return
    _print_task(task)


@task_app.command("list")
def task_list(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option("--limit", help="Maximum tasks to show")] = 20,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """List tasks, newest first."""
    with _open_graph(ctx) as graph:
        tasks = graph.store.list_tasks(limit=limit)

    if json_output:
        console.print_json(json.dumps([t.to_dict() for t in tasks]))
        return

    if not tasks:
        console.print("[yellow]No tasks found.[/yellow]")
        return

    table = Table(title="Tasks")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Deps", justify="right")

    for t in tasks:
        table.add_row(
            t.id,
            escape(t.title[:30]),
            t.status.value,
            t.priority.value,
            str(len(t.dependencies)),
        )

    console.print(table)


@task_app.command("update")
def task_update(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task ID")],
    title: Annotated[Optional[str], typer.Option("--title", "-t", help="Task title")] = None,
    description: Annotated[Optional[str], typer.Option("--desc", "-d", help="Description")] = None,
    due: Annotated[Optional[str], typer.Option("--due", help="Due date (ISO 8601)")] = None,
    priority: Annotated[
        Optional[str], typer.Option("--priority", "-p", help="Priority: low, medium, high")
    ] = None,
    status: Annotated[
        Optional[str], typer.Option("--status", "-s", help="Status: todo, in-progress, completed")
    ] = None,
    depends_on: Annotated[
        Optional[list[str]],
        typer.Option("--depends-on", "-D", help="Replace dependencies (repeatable)"),
    ] = None,
    clear_deps: Annotated[
        bool, typer.Option("--clear-deps", help="Remove all dependencies")
    ] = False,
) -> None:
    """Update task fields and optionally replace its dependencies."""
    if clear_deps and depends_on:
        err_console.print("[red]Error: --clear-deps cannot be combined with --depends-on[/red]")
        raise typer.Exit(1)

    dependency_ids = [] if clear_deps else depends_on

    with _open_graph(ctx) as graph:
        task = graph.update_task(
            task_id,
            {
                "title": title,
                "description": description,
                "due_date": due,
                "priority": priority,
                "status": status,
            },
            dependency_ids,
        )

    console.print(f"[green]Updated task:[/green] {task.id}")


@task_app.command("delete")
def task_delete(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task ID")],
) -> None:
    """Delete a task and strip it from its dependents."""
    with _open_graph(ctx) as graph:
        cleaned = graph.delete_task(task_id)

    console.print(f"[green]Deleted task:[/green] {task_id}")
    if cleaned:
        console.print(f"Removed from {len(cleaned)} dependent task(s): {', '.join(cleaned)}")


# =============================================================================
# Dependency Commands
# =============================================================================

@deps_app.command("add")
def deps_add(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task that gains the dependency")],
    dependency_id: Annotated[str, typer.Argument(help="Task it depends on")],
) -> None:
    """Make a task depend on another."""
    with _open_graph(ctx) as graph:
        graph.add_dependency(task_id, dependency_id)

    console.print(f"[green]Added dependency:[/green] {task_id} -> {dependency_id}")


@deps_app.command("remove")
def deps_remove(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task that loses the dependency")],
    dependency_id: Annotated[str, typer.Argument(help="Dependency to remove")],
) -> None:
    """Remove a dependency from a task."""
    with _open_graph(ctx) as graph:
        graph.remove_dependency(task_id, dependency_id)

    console.print(f"[green]Removed dependency:[/green] {task_id} -> {dependency_id}")


@deps_app.command("tree")
def deps_tree(
    ctx: typer.Context,
    task_id: Annotated[str, typer.Argument(help="Task ID")],
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show all direct and indirect dependencies of a task, by level."""
    with _open_graph(ctx) as graph:
        closure = graph.get_all_dependencies(task_id)

    if json_output:
        console.print_json(json.dumps(closure.to_dict()))
        return

    if not closure.all_dependencies:
        console.print(f"[yellow]{task_id} has no dependencies.[/yellow]")
        return
    console.print(_closure_tree(closure))


# =============================================================================
# Misc Commands
# =============================================================================

@app.command("stats")
def stats_command(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Show task store statistics."""
    with _open_graph(ctx) as graph:
        stats = graph.store.get_stats()

    if json_output:
        console.print_json(json.dumps(stats))
        return

    console.print("[bold]taskdeps Statistics[/bold]")
    console.print("-" * 30)
    console.print(f"Tasks:            {stats['total']}")
    console.print(f"Dependency edges: {stats['dependency_edges']}")
    for status, count in sorted(stats["by_status"].items()):
        console.print(f"  {status:<14}  {count}")


@app.command("version")
def version_command() -> None:
    """Show version."""
    console.print(f"taskdeps {__version__}")


if __name__ == "__main__":
    app()
