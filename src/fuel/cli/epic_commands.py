"""Epic commands."""

import typer
from rich.markup import escape
from rich.table import Table

from fuel.cli.utils import console, echo_json, get_services, run_async, task_table
from fuel.domain.models import Epic, EpicDeletion, EpicStatus, EpicView

epic_app = typer.Typer(help="Epic management", no_args_is_help=True)

STATUS_STYLES = {
    EpicStatus.NOT_STARTED: "dim",
    EpicStatus.IN_PROGRESS: "yellow",
    EpicStatus.REVIEW_PENDING: "green",
}


@epic_app.command("add")
def add_epic(
    title: str = typer.Argument(..., help="Epic title"),
    description: str | None = typer.Option(None, "--description", "-d", help="Epic description"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create an epic."""

    async def _add() -> Epic:
        services = await get_services()
        return await services["epic_service"].create(title, description)

    epic = run_async(_add())
    if json_output:
        echo_json(epic)
    else:
        console.print(
            f"[green]✓[/green] Created epic [cyan]{epic.id}[/cyan]: {escape(epic.title)}"
        )


@epic_app.command("list")
def list_epics(json_output: bool = typer.Option(False, "--json", help="Output as JSON")) -> None:
    """List epics with their derived status."""

    async def _list() -> list[EpicView]:
        services = await get_services()
        return await services["epic_service"].list_epics()

    views = run_async(_list())
    if json_output:
        echo_json(views)
        return
    if not views:
        console.print("[dim]No epics found[/dim]")
        return

    table = Table(title="Epics")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="magenta")
    table.add_column("Status")
    table.add_column("Progress", justify="center")
    for view in views:
        closed = sum(1 for task in view.tasks if task.status.value == "closed")
        style = STATUS_STYLES[view.status]
        table.add_row(
            view.epic.id,
            escape(view.epic.title),
            f"[{style}]{view.status.value}[/{style}]",
            f"{closed}/{len(view.tasks)}",
        )
    console.print(table)


@epic_app.command("show")
def show_epic(
    epic_id: str = typer.Argument(..., help="Epic ID (full or partial)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show an epic and its linked tasks."""

    async def _show() -> EpicView:
        services = await get_services()
        return await services["epic_service"].get(epic_id)

    view = run_async(_show())
    if json_output:
        echo_json(view)
        return

    console.print(f"[bold]Epic {view.epic.id}[/bold]")
    console.print(f"Title: [magenta]{escape(view.epic.title)}[/magenta]")
    if view.epic.description:
        console.print(f"Description: {escape(view.epic.description)}")
    console.print(f"Status: {view.status.value}")
    console.print(f"Created: {view.epic.created_at}")
    if view.tasks:
        console.print(task_table(view.tasks, title="Linked Tasks"))
    else:
        console.print("[dim]No linked tasks[/dim]")


@epic_app.command("update")
def update_epic(
    epic_id: str = typer.Argument(..., help="Epic ID (full or partial)"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    description: str | None = typer.Option(None, "--description", "-d", help="New description"),
) -> None:
    """Update an epic's title or description."""

    async def _update() -> Epic:
        services = await get_services()
        return await services["epic_service"].update(epic_id, title=title, description=description)

    epic = run_async(_update())
    console.print(f"[green]✓[/green] Updated epic [cyan]{epic.id}[/cyan]")


@epic_app.command("delete")
def delete_epic(
    epic_id: str = typer.Argument(..., help="Epic ID (full or partial)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete an epic, unlinking its tasks."""

    async def _delete() -> EpicDeletion:
        services = await get_services()
        return await services["epic_service"].delete(epic_id)

    deletion = run_async(_delete())
    if json_output:
        echo_json(deletion)
        return

    console.print(f"[green]✓[/green] Deleted epic [cyan]{deletion.epic.id}[/cyan]")
    if deletion.unlinked_task_ids:
        console.print(f"Unlinked tasks: {', '.join(deletion.unlinked_task_ids)}")
