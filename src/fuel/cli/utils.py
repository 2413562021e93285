"""Shared helpers for CLI commands: service wiring, error handling and output."""

import asyncio
import json
from collections.abc import Coroutine, Iterable
from datetime import datetime
from typing import Any, TypeVar

import typer
from pydantic import BaseModel
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fuel.domain.models import Task
from fuel.infrastructure.exceptions import FuelError

T = TypeVar("T")

console = Console()
err_console = Console(stderr=True)

PRIORITY_STYLES = {0: "bold red", 1: "red", 2: "yellow", 3: "green", 4: "dim"}


async def get_services() -> dict[str, Any]:
    """Load configuration, open the database and wire up the engine services."""
    from fuel.infrastructure import ConfigManager, Database, IdGenerator, setup_logging
    from fuel.services import (
        BacklogService,
        DependencyResolver,
        EpicService,
        IdentifierResolver,
        RunService,
        StuckDetector,
        TaskService,
    )

    config_manager = ConfigManager()
    config = config_manager.load_config()

    setup_logging(log_level=config.log_level, log_dir=config_manager.get_log_dir())

    database = Database(
        config_manager.get_database_path(), busy_timeout_ms=config.storage.busy_timeout_ms
    )
    await database.initialize()

    id_generator = IdGenerator(hash_length=config.ids.hash_length)
    resolver = IdentifierResolver(database)
    task_service = TaskService(
        database,
        id_generator=id_generator,
        resolver=resolver,
        defaults=config.tasks,
        output_max_bytes=config.runs.output_max_bytes,
    )

    return {
        "config_manager": config_manager,
        "database": database,
        "resolver": resolver,
        "task_service": task_service,
        "dependency_resolver": DependencyResolver(database, resolver),
        "epic_service": EpicService(database, id_generator=id_generator, resolver=resolver),
        "backlog_service": BacklogService(
            database, task_service=task_service, id_generator=id_generator, resolver=resolver
        ),
        "run_service": RunService(
            database,
            id_generator=id_generator,
            resolver=resolver,
            output_max_bytes=config.runs.output_max_bytes,
        ),
        "stuck_detector": StuckDetector(database),
    }


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a command coroutine, turning engine errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except FuelError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}", soft_wrap=True)
        raise typer.Exit(1) from e


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated option value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO 8601 option value."""
    if value is None:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Invalid ISO 8601 datetime: '{value}'") from None


def echo_json(data: BaseModel | Iterable[BaseModel] | dict[str, Any]) -> None:
    """Print models as JSON on stdout without any rich formatting."""
    if isinstance(data, BaseModel):
        payload: Any = data.model_dump(mode="json")
    elif isinstance(data, dict):
        payload = data
    else:
        payload = [item.model_dump(mode="json") for item in data]
    typer.echo(json.dumps(payload, indent=2))


def task_table(tasks: list[Task], title: str = "Tasks") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", style="magenta")
    table.add_column("Status", style="yellow")
    table.add_column("Priority", justify="center")
    table.add_column("Type", style="green")
    table.add_column("Blocked By", style="dim")

    for task in tasks:
        title_preview = task.title[:40] + "..." if len(task.title) > 40 else task.title
        table.add_row(
            task.id,
            escape(title_preview),
            task.status.value,
            f"[{PRIORITY_STYLES.get(task.priority, '')}]P{task.priority}[/]",
            task.type.value,
            ", ".join(task.blocked_by) or "-",
        )
    return table
