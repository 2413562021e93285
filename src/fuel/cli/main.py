"""Fuel CLI - local task and epic tracking for coding agents."""

import sys

import typer
import yaml
from rich.markup import escape
from rich.table import Table

from fuel import __version__
from fuel.cli.backlog_commands import backlog_app
from fuel.cli.epic_commands import epic_app
from fuel.cli.run_commands import run_app
from fuel.cli.task_commands import dep_app, task_app
from fuel.cli.utils import console, echo_json, get_services, run_async
from fuel.domain.models import BoardSummary

app = typer.Typer(
    name="fuel",
    help="Fuel - track tasks, dependencies and epics for autonomous coding agents",
    no_args_is_help=True,
)


# ===== Version =====
@app.command()
def version() -> None:
    """Show Fuel version."""
    console.print(f"[bold]Fuel[/bold] version [cyan]{__version__}[/cyan]")


# ===== Init =====
@app.command()
def init() -> None:
    """Create the .fuel directory, a default config file and the database."""
    from fuel.infrastructure import Config, ConfigManager, Database, setup_logging

    config_manager = ConfigManager()
    config_path = config_manager.get_fuel_dir() / "config.yaml"
    if not config_path.exists():
        with open(config_path, "w") as f:
            yaml.safe_dump(Config().model_dump(mode="json"), f, sort_keys=False)
        console.print(f"[green]✓[/green] Wrote default config to {escape(str(config_path))}")

    config = config_manager.load_config()
    setup_logging(log_level=config.log_level, log_dir=config_manager.get_log_dir())

    async def _init() -> None:
        database = Database(
            config_manager.get_database_path(), busy_timeout_ms=config.storage.busy_timeout_ms
        )
        await database.initialize()

    run_async(_init())
    db_path = escape(str(config_manager.get_database_path()))
    console.print(f"[green]✓[/green] Database ready at {db_path}")


# ===== Status =====
@app.command()
def status(json_output: bool = typer.Option(False, "--json", help="Output as JSON")) -> None:
    """Show task counts per board column."""

    async def _status() -> BoardSummary:
        services = await get_services()
        return await services["stuck_detector"].board_summary()

    summary = run_async(_status())
    if json_output:
        echo_json(summary)
        return

    table = Table(title="Board")
    table.add_column("Column", style="cyan")
    table.add_column("Tasks", justify="right")
    table.add_row("Ready", str(summary.ready))
    table.add_row("Blocked", str(summary.blocked))
    table.add_row("In Progress", str(summary.in_progress))
    table.add_row("Review", str(summary.review))
    table.add_row("Closed", str(summary.closed))
    table.add_row("[red]Stuck[/red]", str(summary.stuck))
    console.print(table)


# ===== Sub-commands =====
app.add_typer(task_app, name="task")
app.add_typer(dep_app, name="dep")
app.add_typer(epic_app, name="epic")
app.add_typer(backlog_app, name="backlog")
app.add_typer(run_app, name="run")


# ===== Main Entry Point =====
def main() -> None:
    """Main entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
