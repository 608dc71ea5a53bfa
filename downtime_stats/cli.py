import asyncio
import sys
from datetime import datetime

import structlog
import typer
from rich.console import Console
from rich.table import Table

from downtime_stats.core.exceptions import DowntimeStatsError

console = Console()
cli_app = typer.Typer(name="downtime-admin", help="Downtime stats administrative CLI")

_DATETIME_FORMATS = ["%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S", "%Y-%m-%d"]


@cli_app.callback()
def _configure_logging(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log pass progress to stderr"),
):
    # Logs go to stderr so --json output on stdout stays parseable
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(20 if verbose else 30),
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
    )


def _run_async(coro):
    """Run async code from sync CLI context."""
    return asyncio.run(coro)


async def _ensure_db():
    from downtime_stats.core.database import init_db
    await init_db()


@cli_app.command("create-key")
def create_key(
    label: str = typer.Option(..., "--label", help="Human-readable label for this key"),
    notes: str = typer.Option(None, "--notes", help="Optional notes"),
):
    """Create a new API key."""
    async def _create():
        await _ensure_db()
        from downtime_stats.services.auth import AuthService
        service = AuthService()
        return await service.create_key(label=label, notes=notes)

    raw_key, key_row = _run_async(_create())

    console.print("\n[bold green]API key created successfully![/bold green]\n")
    console.print(f"  Label:  {key_row.label}")
    console.print(f"  Prefix: {key_row.key_prefix}")
    console.print(f"\n  [bold yellow]Key: {raw_key}[/bold yellow]")
    console.print("\n  [dim]Save this key now; it cannot be retrieved later.[/dim]\n")


@cli_app.command("list-keys")
def list_keys():
    """List all active API keys."""
    async def _list():
        await _ensure_db()
        from downtime_stats.services.auth import AuthService
        return await AuthService().list_keys()

    keys = _run_async(_list())

    if not keys:
        console.print("[dim]No active API keys found.[/dim]")
        return

    table = Table(title="Active API Keys")
    table.add_column("Prefix", style="cyan")
    table.add_column("Label")
    table.add_column("Created")
    table.add_column("Last Used")

    for key in keys:
        created = key.created_at.strftime("%Y-%m-%d %H:%M") if key.created_at else "-"
        last_used = key.last_used_at.strftime("%Y-%m-%d %H:%M") if key.last_used_at else "never"
        table.add_row(key.key_prefix, key.label, created, last_used)

    console.print(table)


@cli_app.command("revoke-key")
def revoke_key(
    key: str = typer.Argument(help="Full API key or key prefix to revoke"),
):
    """Revoke an API key."""
    async def _revoke():
        await _ensure_db()
        from downtime_stats.services.auth import AuthService
        return await AuthService().revoke_key(key)

    if _run_async(_revoke()):
        console.print("[bold red]Key revoked successfully.[/bold red]")
    else:
        console.print(f"[yellow]No active key found matching '{key}'.[/yellow]")
        raise typer.Exit(code=1)


@cli_app.command("stats")
def stats(
    start: datetime = typer.Option(..., "--start", formats=_DATETIME_FORMATS, help="Window start (UTC)"),
    end: datetime = typer.Option(..., "--end", formats=_DATETIME_FORMATS, help="Window end (UTC)"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw payload instead of tables"),
):
    """Run one downtime pass and print intervals and per-monitor totals."""
    async def _compute():
        await _ensure_db()
        from downtime_stats.dependencies import build_aggregator
        from downtime_stats.services.downtime.window import assume_utc
        return await build_aggregator().compute(assume_utc(start), assume_utc(end))

    try:
        result = _run_async(_compute())
    except DowntimeStatsError as exc:
        console.print(f"[bold red]{exc.code}:[/bold red] {exc.message}")
        raise typer.Exit(code=1)

    from downtime_stats.schemas.downtime import DowntimeStatsResponse
    payload = DowntimeStatsResponse.from_stats(result)

    if as_json:
        console.print_json(payload.model_dump_json())
        return

    intervals = Table(title=f"Downtime {payload.windowStart} to {payload.windowEnd}")
    intervals.add_column("Monitor", style="cyan")
    intervals.add_column("URL")
    intervals.add_column("Down")
    intervals.add_column("Up")
    intervals.add_column("Duration", style="red")
    for row in payload.downtimeStats:
        up = f"{row.upTime} (window end)" if row.ongoing else row.upTime
        intervals.add_row(row.monitor_name, row.monitor_url or "-", row.downTime, up, row.duration)

    totals = Table(title="Total Downtime")
    totals.add_column("Monitor", style="cyan")
    totals.add_column("URL")
    totals.add_column("Total", style="red")
    for row in payload.totalDowntime:
        totals.add_row(row.monitor_name, row.monitor_url or "-", row.downTime)

    if payload.downtimeStats:
        console.print(intervals)
    else:
        console.print("[dim]No downtime in window.[/dim]")
    console.print(totals)


def main():
    cli_app()


if __name__ == "__main__":
    main()
