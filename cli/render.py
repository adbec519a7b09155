from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_list(title: str, items: List[str], empty: str) -> None:
    echo_heading(title)
    if not items:
        typer.echo(empty)
        return
    for item in items:
        typer.echo(f"  - {item}")


def render_series(payload: Dict[str, Any]) -> None:
    echo_heading(f"Series ({payload.get('granularity')})")
    echo_key_values([("house", payload.get("house"))])

    error = payload.get("error")
    if error:
        typer.secho(f"error: {error}", fg=typer.colors.RED)

    if payload.get("granularity") == "sensor":
        sensors = payload.get("sensors") or []
        rows = payload.get("rows") or []
        typer.echo()
        if not rows:
            typer.echo("No readings in window.")
            return
        typer.echo("  ".join(["time", *sensors]))
        for row in rows:
            values = row.get("values") or {}
            typer.echo("  ".join([row.get("label", ""), *(str(values.get(s, 0)) for s in sensors)]))
        return

    series = payload.get("series") or []
    if not series:
        typer.echo("Empty window.")
        return
    for daily in series:
        points = daily.get("points") or []
        typer.echo()
        echo_heading(f"{daily.get('date')} (total {sum(p.get('eggs', 0) for p in points)})")
        for point in points:
            if point.get("eggs"):
                typer.echo(f"  {point.get('label')}: {point.get('eggs')}")


def render_total(payload: Dict[str, Any]) -> None:
    eggs = payload.get("eggs")
    echo_key_values(
        [
            ("house", payload.get("house")),
            ("day", payload.get("day")),
            ("eggs", "could not read data" if eggs is None else eggs),
        ]
    )


def render_logs(entries: List[Dict[str, Any]]) -> None:
    echo_heading("System logs")
    if not entries:
        typer.echo("No log entries to show.")
        return
    for entry in entries:
        typer.echo(entry.get("text") or entry.get("message"))
