"""Task and dependency commands."""

import typer
from rich.markup import escape
from rich.table import Table

from fuel.cli.utils import (
    console,
    echo_json,
    get_services,
    parse_csv,
    run_async,
    task_table,
)
from fuel.domain.models import StuckTask, Task, TaskDeletion
from fuel.services.task_service import BatchResult

task_app = typer.Typer(help="Task management", no_args_is_help=True)
dep_app = typer.Typer(help="Task dependency management", no_args_is_help=True)


def _print_task(task: Task) -> None:
    console.print(f"[bold]Task {task.id}[/bold]")
    console.print(f"Title: [magenta]{escape(task.title)}[/magenta]")
    if task.description:
        console.print(f"Description: {escape(task.description)}")
    console.print(f"Status: {task.status.value}")
    console.print(f"Type: {task.type.value}")
    console.print(f"Priority: P{task.priority}")
    console.print(f"Complexity: {task.complexity.value}")
    if task.size:
        console.print(f"Size: {task.size.value}")
    if task.labels:
        console.print(f"Labels: {escape(', '.join(task.labels))}")
    if task.epic_id:
        console.print(f"Epic: {task.epic_id}")
    if task.blocked_by:
        console.print(f"Blocked By: {', '.join(task.blocked_by)}")
    if task.reason:
        console.print(f"Reason: {escape(task.reason)}")
    if task.commit_hash:
        console.print(f"Commit: {escape(task.commit_hash)}")
    if task.consumed:
        console.print(f"Consumed At: {task.consumed_at}")
        if task.consume_pid is not None:
            console.print(f"Agent PID: {task.consume_pid}")
        if task.consumed_exit_code is not None:
            console.print(f"Exit Code: {task.consumed_exit_code}")
    console.print(f"Created: {task.created_at}")
    console.print(f"Updated: {task.updated_at}")


def _report_batch(result: BatchResult, verb: str, json_output: bool) -> None:
    """Print a batch outcome and exit non-zero if any identifier failed."""
    if json_output:
        echo_json(
            {
                "succeeded": [task.model_dump(mode="json") for task in result.succeeded],
                "failures": [
                    {"identifier": failure.identifier, "error": str(failure.error)}
                    for failure in result.failures
                ],
            }
        )
    else:
        for task in result.succeeded:
            console.print(f"[green]✓[/green] {verb} task {task.id}: {escape(task.title)}")
        for failure in result.failures:
            console.print(
                f"[red]✗[/red] {escape(failure.identifier)}: {escape(str(failure.error))}",
                soft_wrap=True,
            )

    if not result.ok:
        raise typer.Exit(result.exit_code)


@task_app.command("add")
def add_task(
    title: str = typer.Argument(..., help="Task title"),
    description: str | None = typer.Option(None, "--description", "-d", help="Task description"),
    task_type: str | None = typer.Option(
        None, "--type", "-t", help="task, bug, feature, chore, epic or test"
    ),
    priority: int | None = typer.Option(None, "--priority", "-p", help="Priority 0 (highest) to 4"),
    labels: str | None = typer.Option(None, "--labels", "-l", help="Comma-separated labels"),
    size: str | None = typer.Option(None, "--size", "-s", help="xs, s, m, l or xl"),
    complexity: str | None = typer.Option(
        None, "--complexity", "-c", help="trivial, simple, moderate or complex"
    ),
    blocked_by: str | None = typer.Option(
        None, "--blocked-by", "-b", help="Comma-separated IDs of blocking tasks"
    ),
    epic: str | None = typer.Option(None, "--epic", "-e", help="Epic ID to link to"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Add a new task."""

    async def _add() -> Task:
        services = await get_services()
        return await services["task_service"].create(
            title,
            description=description,
            type=task_type,
            priority=priority,
            labels=parse_csv(labels),
            size=size,
            complexity=complexity,
            blocked_by=parse_csv(blocked_by),
            epic=epic,
        )

    task = run_async(_add())
    if json_output:
        echo_json(task)
    else:
        console.print(
            f"[green]✓[/green] Created task [cyan]{task.id}[/cyan]: {escape(task.title)}"
        )


@task_app.command("show")
def show_task(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show task details, its open blockers and its runs."""

    async def _show() -> tuple[Task, list[Task], int]:
        services = await get_services()
        task = await services["task_service"].get(task_id)
        blockers = await services["dependency_resolver"].get_blockers(task.id)
        runs = await services["run_service"].list_runs(task.id)
        return task, blockers, len(runs)

    task, blockers, run_count = run_async(_show())
    if json_output:
        echo_json(
            {
                **task.model_dump(mode="json"),
                "open_blockers": [blocker.id for blocker in blockers],
                "run_count": run_count,
            }
        )
        return

    _print_task(task)
    if blockers:
        console.print(task_table(blockers, title="Open Blockers"))
    console.print(f"Runs: {run_count}")


@task_app.command("list")
def list_tasks(
    status: str | None = typer.Option(None, "--status", help="Filter by status"),
    epic: str | None = typer.Option(None, "--epic", "-e", help="Filter by epic"),
    task_type: str | None = typer.Option(None, "--type", "-t", help="Filter by type"),
    label: str | None = typer.Option(None, "--label", help="Filter by label"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List tasks."""

    async def _list() -> list[Task]:
        services = await get_services()
        return await services["task_service"].list_tasks(
            status=status, epic=epic, type=task_type, label=label
        )

    tasks = run_async(_list())
    if json_output:
        echo_json(tasks)
    elif not tasks:
        console.print("[dim]No tasks found[/dim]")
    else:
        console.print(task_table(tasks))


@task_app.command("update")
def update_task(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    description: str | None = typer.Option(None, "--description", "-d", help="New description"),
    task_type: str | None = typer.Option(None, "--type", "-t", help="New type"),
    priority: int | None = typer.Option(None, "--priority", "-p", help="New priority"),
    size: str | None = typer.Option(None, "--size", "-s", help="New size"),
    complexity: str | None = typer.Option(None, "--complexity", "-c", help="New complexity"),
    status: str | None = typer.Option(None, "--status", help="Set status directly"),
    epic: str | None = typer.Option(None, "--epic", "-e", help="Link to epic"),
    no_epic: bool = typer.Option(False, "--no-epic", help="Unlink from its epic"),
    add_labels: str | None = typer.Option(None, "--add-labels", help="Comma-separated labels"),
    remove_labels: str | None = typer.Option(
        None, "--remove-labels", help="Comma-separated labels"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Update task fields."""
    if epic and no_epic:
        raise typer.BadParameter("Cannot use both --epic and --no-epic")

    async def _update() -> Task:
        services = await get_services()
        return await services["task_service"].update(
            task_id,
            title=title,
            description=description,
            type=task_type,
            priority=priority,
            size=size,
            complexity=complexity,
            status=status,
            epic=epic,
            clear_epic=no_epic,
            add_labels=parse_csv(add_labels),
            remove_labels=parse_csv(remove_labels),
        )

    task = run_async(_update())
    if json_output:
        echo_json(task)
    else:
        console.print(f"[green]✓[/green] Updated task [cyan]{task.id}[/cyan]")


@task_app.command("start")
def start_task(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Move an open task to in_progress."""

    async def _start() -> Task:
        services = await get_services()
        return await services["task_service"].start(task_id)

    task = run_async(_start())
    if json_output:
        echo_json(task)
    else:
        console.print(f"[green]✓[/green] Started task [cyan]{task.id}[/cyan]")


@task_app.command("done")
def done_tasks(
    task_ids: list[str] = typer.Argument(..., help="One or more task IDs"),
    reason: str | None = typer.Option(None, "--reason", "-r", help="Why the task was closed"),
    commit: str | None = typer.Option(None, "--commit", help="Commit hash of the work"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Close one or more tasks."""

    async def _done() -> BatchResult:
        services = await get_services()
        return await services["task_service"].done_many(
            task_ids, reason=reason, commit_hash=commit
        )

    _report_batch(run_async(_done()), "Closed", json_output)


@task_app.command("reopen")
def reopen_tasks(
    task_ids: list[str] = typer.Argument(..., help="One or more task IDs"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Reopen closed, in-progress or review tasks."""

    async def _reopen() -> BatchResult:
        services = await get_services()
        return await services["task_service"].reopen_many(task_ids)

    _report_batch(run_async(_reopen()), "Reopened", json_output)


@task_app.command("retry")
def retry_tasks(
    task_ids: list[str] | None = typer.Argument(
        None, help="Task IDs (default: every consumed in-progress task)"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Return consumed in-progress tasks to open."""

    async def _retry() -> BatchResult:
        services = await get_services()
        identifiers = task_ids
        if not identifiers:
            retryable = await services["stuck_detector"].find_retryable()
            identifiers = [task.id for task in retryable]
        return await services["task_service"].retry_many(identifiers)

    result = run_async(_retry())
    if not result.succeeded and not result.failures and not json_output:
        console.print("[dim]No tasks to retry[/dim]")
        return
    _report_batch(result, "Retried", json_output)


@task_app.command("remove")
def remove_task(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a task and drop it from other tasks' blocked_by lists."""

    async def _remove() -> TaskDeletion:
        services = await get_services()
        return await services["task_service"].delete(task_id)

    deletion = run_async(_remove())
    if json_output:
        echo_json(deletion)
        return

    console.print(f"[green]✓[/green] Deleted task [cyan]{deletion.task.id}[/cyan]")
    if deletion.cleaned_task_ids:
        console.print(f"Unblocked references in: {', '.join(deletion.cleaned_task_ids)}")


@task_app.command("ready")
def ready_tasks(json_output: bool = typer.Option(False, "--json", help="Output as JSON")) -> None:
    """List open tasks whose blockers are all closed."""

    async def _ready() -> list[Task]:
        services = await get_services()
        return await services["dependency_resolver"].get_ready_tasks()

    tasks = run_async(_ready())
    if json_output:
        echo_json(tasks)
    elif not tasks:
        console.print("[dim]No ready tasks[/dim]")
    else:
        console.print(task_table(tasks, title="Ready Tasks"))


@task_app.command("blocked")
def blocked_tasks(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List open tasks waiting on unclosed blockers."""

    async def _blocked() -> list[Task]:
        services = await get_services()
        return await services["dependency_resolver"].get_blocked_tasks()

    tasks = run_async(_blocked())
    if json_output:
        echo_json(tasks)
    elif not tasks:
        console.print("[dim]No blocked tasks[/dim]")
    else:
        console.print(task_table(tasks, title="Blocked Tasks"))


@task_app.command("stuck")
def stuck_tasks(json_output: bool = typer.Option(False, "--json", help="Output as JSON")) -> None:
    """List in-progress tasks whose agent process failed or died."""

    async def _stuck() -> list[StuckTask]:
        services = await get_services()
        return await services["stuck_detector"].find_stuck()

    stuck = run_async(_stuck())
    if json_output:
        echo_json(stuck)
        return
    if not stuck:
        console.print("[dim]No stuck tasks[/dim]")
        return

    table = Table(title="Stuck Tasks")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="magenta")
    table.add_column("Reason", style="red")
    table.add_column("Exit Code", justify="center")
    table.add_column("PID", justify="center")
    for entry in stuck:
        exit_code = entry.task.consumed_exit_code
        pid = entry.task.consume_pid
        table.add_row(
            entry.task.id,
            escape(entry.task.title),
            entry.reason.value,
            str(exit_code) if exit_code is not None else "-",
            str(pid) if pid is not None else "-",
        )
    console.print(table)


@task_app.command("claim")
def claim_task(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    pid: int = typer.Option(..., "--pid", help="PID of the agent process"),
) -> None:
    """Record that an agent process picked up a task."""

    async def _claim() -> Task:
        services = await get_services()
        return await services["task_service"].claim(task_id, pid)

    task = run_async(_claim())
    console.print(f"[green]✓[/green] Task [cyan]{task.id}[/cyan] claimed by PID {pid}")


@task_app.command("exit")
def record_exit(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    code: int = typer.Option(..., "--code", help="Exit code of the agent process"),
    output: str | None = typer.Option(None, "--output", help="Captured agent output"),
) -> None:
    """Record how the agent process working a task ended."""

    async def _exit() -> Task:
        services = await get_services()
        return await services["task_service"].record_exit(task_id, code, output)

    task = run_async(_exit())
    style = "green" if code == 0 else "yellow"
    console.print(f"[{style}]Recorded exit code {code} for task {task.id}[/{style}]")


@dep_app.command("add")
def add_dependency(
    task_id: str = typer.Argument(..., help="Task that will wait"),
    blocker_id: str = typer.Argument(..., help="Task that must close first"),
) -> None:
    """Make a task wait for another task."""

    async def _add() -> Task:
        services = await get_services()
        return await services["dependency_resolver"].add_dependency(task_id, blocker_id)

    task = run_async(_add())
    console.print(
        f"[green]✓[/green] {task.id} is now blocked by: {', '.join(task.blocked_by)}",
        soft_wrap=True,
    )


@dep_app.command("remove")
def remove_dependency(
    task_id: str = typer.Argument(..., help="Task that waits"),
    blocker_id: str = typer.Argument(..., help="Blocking task to remove"),
) -> None:
    """Remove a dependency between two tasks."""

    async def _remove() -> Task:
        services = await get_services()
        return await services["dependency_resolver"].remove_dependency(task_id, blocker_id)

    task = run_async(_remove())
    console.print(f"[green]✓[/green] Removed dependency from {task.id}")
