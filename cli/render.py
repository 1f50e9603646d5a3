from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import typer


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def format_temperature(value: Optional[float]) -> str:
    if value is None:
        return "--"
    fahrenheit = value * 9 / 5 + 32
    return f"{value:.2f} °C ({fahrenheit:.1f} °F)"


def render_current(payload: Dict[str, Any]) -> None:
    echo_heading("Current Temperature")
    echo_key_values(
        [
            ("temperature", format_temperature(payload.get("temperature"))),
            ("timestamp", payload.get("timestamp")),
        ]
    )


def render_history(readings: Iterable[Dict[str, Any]]) -> None:
    items = list(readings)
    echo_heading(f"History ({len(items)} readings)")
    if not items:
        typer.echo("No readings recorded.")
        return
    for reading in items:
        typer.echo(f"  {reading.get('timestamp')}  {format_temperature(reading.get('temperature'))}")


def render_stats(payload: Dict[str, Any]) -> None:
    echo_heading("Statistics")
    echo_key_values(
        [
            ("count", payload.get("count")),
            ("min", format_temperature(payload.get("min_value"))),
            ("max", format_temperature(payload.get("max_value"))),
            ("mean", format_temperature(payload.get("mean_value"))),
        ]
    )
