from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_list, render_logs, render_series, render_total


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for reading egg-production feeds from the service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        typer.secho("CLI state is uninitialized.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Feeds API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each API response.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("houses")
def houses_command(ctx: typer.Context) -> None:
    """List the houses found in the database."""
    state = _get_state(ctx)
    render_list("Houses", state.client.get_houses(), "No houses found (or the database is unreachable).")


@app.command("sensors")
def sensors_command(
    ctx: typer.Context,
    house: str = typer.Argument(..., help="House selector, e.g. Pabellon_1, gallinero-2 or all."),
) -> None:
    """List the sensors reported by a house."""
    state = _get_state(ctx)
    payload = state.client.get_sensors(house)
    render_list(f"Sensors of {payload.get('house')}", payload.get("sensors") or [], "No sensors found.")


@app.command("series")
def series_command(
    ctx: typer.Context,
    house: str = typer.Argument(..., help="House selector, e.g. Pabellon_1, gallinero-2 or all."),
    granularity: str = typer.Option("hour", "--granularity", "-g", help="minute, hour or sensor."),
    start: Optional[str] = typer.Option(None, "--start", help="First day, YYYY-MM-DD (default today)."),
    end: Optional[str] = typer.Option(None, "--end", help="Last day, YYYY-MM-DD (default start)."),
    start_time: str = typer.Option("00:00", "--start-time", help="Opening clock time, HH:MM."),
    end_time: str = typer.Option("24:00", "--end-time", help="Closing clock time, HH:MM."),
    sensor: Optional[List[str]] = typer.Option(None, "--sensor", help="Sensor column to export (repeatable)."),
    as_csv: bool = typer.Option(False, "--csv", help="Print CSV instead of a summary."),
) -> None:
    """Show aggregated egg counts for a window."""
    state = _get_state(ctx)
    params: Dict[str, Any] = {
        "granularity": granularity,
        "start_time": start_time,
        "end_time": end_time,
    }
    if start:
        params["start"] = start
    if end:
        params["end"] = end

    if as_csv:
        if sensor:
            params["sensor"] = sensor
        typer.echo(state.client.get_series_csv(house, params), nl=False)
        return
    render_series(state.client.get_series(house, params))


@app.command("total")
def total_command(
    ctx: typer.Context,
    house: str = typer.Argument(..., help="House selector."),
    day: Optional[str] = typer.Option(None, "--day", help="Day to count, YYYY-MM-DD (default today)."),
) -> None:
    """Show the eggs collected by a house during one day."""
    state = _get_state(ctx)
    render_total(state.client.get_total(house, day))


@app.command("logs")
def logs_command(
    ctx: typer.Context,
    house: Optional[str] = typer.Option(None, "--house", help="Only entries of this house."),
) -> None:
    """Show the latest device log entries, newest first."""
    state = _get_state(ctx)
    render_logs(state.client.get_logs(house))
