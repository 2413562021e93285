"""Run history commands."""

import typer
from rich.markup import escape
from rich.table import Table

from fuel.cli.utils import console, echo_json, get_services, parse_datetime, run_async
from fuel.domain.models import Run

run_app = typer.Typer(help="Task run history", no_args_is_help=True)


@run_app.command("log")
def log_run(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    agent: str | None = typer.Option(None, "--agent", help="Agent name"),
    model: str | None = typer.Option(None, "--model", help="Model name"),
    started_at: str | None = typer.Option(None, "--started-at", help="ISO 8601 start time"),
    ended_at: str | None = typer.Option(None, "--ended-at", help="ISO 8601 end time"),
    exit_code: int | None = typer.Option(None, "--exit-code", help="Process exit code"),
    output: str | None = typer.Option(None, "--output", help="Captured output"),
    cost: float | None = typer.Option(None, "--cost", help="Cost in USD"),
    session_id: str | None = typer.Option(None, "--session-id", help="Agent session ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Append a run to a task's history."""
    started = parse_datetime(started_at)
    ended = parse_datetime(ended_at)

    async def _log() -> Run:
        services = await get_services()
        return await services["run_service"].log_run(
            task_id,
            agent=agent,
            model=model,
            started_at=started,
            ended_at=ended,
            exit_code=exit_code,
            output=output,
            cost_usd=cost,
            session_id=session_id,
        )

    run = run_async(_log())
    if json_output:
        echo_json(run)
    else:
        console.print(f"[green]✓[/green] Logged run [cyan]{run.run_id}[/cyan] for {run.task_id}")


@run_app.command("list")
def list_runs(
    task_id: str = typer.Argument(..., help="Task ID (full or partial)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List a task's runs, oldest first."""

    async def _list() -> list[Run]:
        services = await get_services()
        return await services["run_service"].list_runs(task_id)

    runs = run_async(_list())
    if json_output:
        echo_json(runs)
        return
    if not runs:
        console.print("[dim]No runs recorded[/dim]")
        return

    table = Table(title=f"Runs for {runs[0].task_id}")
    table.add_column("Run", style="cyan", no_wrap=True)
    table.add_column("Agent", style="green")
    table.add_column("Model")
    table.add_column("Started", style="blue")
    table.add_column("Duration", justify="right")
    table.add_column("Exit", justify="center")
    table.add_column("Cost", justify="right")
    for run in runs:
        duration = run.duration_seconds
        table.add_row(
            run.run_id,
            escape(run.agent or "-"),
            escape(run.model or "-"),
            run.started_at.strftime("%Y-%m-%d %H:%M:%S"),
            f"{duration}s" if duration is not None else "-",
            str(run.exit_code) if run.exit_code is not None else "-",
            f"${run.cost_usd:.4f}" if run.cost_usd is not None else "-",
        )
    console.print(table)
