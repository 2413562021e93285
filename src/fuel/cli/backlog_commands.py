"""Backlog commands."""

import typer
from rich.markup import escape
from rich.table import Table

from fuel.cli.utils import console, echo_json, get_services, parse_csv, run_async
from fuel.domain.models import BacklogItem, Task

backlog_app = typer.Typer(help="Backlog management", no_args_is_help=True)


@backlog_app.command("add")
def add_item(
    title: str = typer.Argument(..., help="Backlog item title"),
    description: str | None = typer.Option(None, "--description", "-d", help="Description"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Add an idea to the backlog."""

    async def _add() -> BacklogItem:
        services = await get_services()
        return await services["backlog_service"].add(title, description)

    item = run_async(_add())
    if json_output:
        echo_json(item)
    else:
        console.print(
            f"[green]✓[/green] Added backlog item [cyan]{item.id}[/cyan]: {escape(item.title)}"
        )


@backlog_app.command("list")
def list_items(json_output: bool = typer.Option(False, "--json", help="Output as JSON")) -> None:
    """List backlog items."""

    async def _list() -> list[BacklogItem]:
        services = await get_services()
        return await services["backlog_service"].list_items()

    items = run_async(_list())
    if json_output:
        echo_json(items)
        return
    if not items:
        console.print("[dim]Backlog is empty[/dim]")
        return

    table = Table(title="Backlog")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="magenta")
    table.add_column("Created", style="blue")
    for item in items:
        table.add_row(
            item.id, escape(item.title), item.created_at.strftime("%Y-%m-%d %H:%M")
        )
    console.print(table)


@backlog_app.command("remove")
def remove_item(item_id: str = typer.Argument(..., help="Backlog item ID")) -> None:
    """Remove a backlog item."""

    async def _remove() -> BacklogItem:
        services = await get_services()
        return await services["backlog_service"].remove(item_id)

    item = run_async(_remove())
    console.print(f"[green]✓[/green] Removed backlog item [cyan]{item.id}[/cyan]")


@backlog_app.command("promote")
def promote_item(
    item_id: str = typer.Argument(..., help="Backlog item ID"),
    task_type: str | None = typer.Option(None, "--type", "-t", help="Task type"),
    priority: int | None = typer.Option(None, "--priority", "-p", help="Task priority"),
    labels: str | None = typer.Option(None, "--labels", "-l", help="Comma-separated labels"),
    size: str | None = typer.Option(None, "--size", "-s", help="Task size"),
    complexity: str | None = typer.Option(None, "--complexity", "-c", help="Task complexity"),
    blocked_by: str | None = typer.Option(
        None, "--blocked-by", "-b", help="Comma-separated IDs of blocking tasks"
    ),
    epic: str | None = typer.Option(None, "--epic", "-e", help="Epic ID to link to"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Turn a backlog item into an open task."""

    async def _promote() -> Task:
        services = await get_services()
        return await services["backlog_service"].promote(
            item_id,
            type=task_type,
            priority=priority,
            labels=parse_csv(labels),
            size=size,
            complexity=complexity,
            blocked_by=parse_csv(blocked_by),
            epic=epic,
        )

    task = run_async(_promote())
    if json_output:
        echo_json(task)
    else:
        console.print(
            f"[green]✓[/green] Promoted {escape(item_id)} to task [cyan]{task.id}[/cyan]"
        )


@backlog_app.command("defer")
def defer_task(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Move a task back to the backlog."""

    async def _defer() -> BacklogItem:
        services = await get_services()
        return await services["backlog_service"].defer(task_id)

    item = run_async(_defer())
    if json_output:
        echo_json(item)
    else:
        console.print(f"[green]✓[/green] Deferred to backlog item [cyan]{item.id}[/cyan]")
