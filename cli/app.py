from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import format_temperature, render_current, render_history, render_stats


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Run and query the thermocouple telemetry service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Service base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Seconds between requests when watching.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Maximum seconds to keep watching.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(
        base_url=base_url,
        poll_interval=poll_interval,
        poll_timeout=timeout,
    )
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on."),
) -> None:
    """Run the service until SIGINT or SIGTERM, then shut down cleanly."""
    uvicorn.run("app.main:app", host=host, port=port, log_config=None)


@app.command("current")
def current_command(ctx: typer.Context) -> None:
    """Show the latest accepted reading."""
    state = _get_state(ctx)
    render_current(state.client.get_current())


@app.command("history")
def history_command(ctx: typer.Context) -> None:
    """List the readings in the retained window, oldest first."""
    state = _get_state(ctx)
    render_history(state.client.get_history())


@app.command("stats")
def stats_command(ctx: typer.Context) -> None:
    """Show minimum, maximum and mean over the retained window."""
    state = _get_state(ctx)
    render_stats(state.client.get_stats())


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    poll_interval: Optional[float] = typer.Option(
        None,
        "--poll-interval",
        help="Override poll interval while watching.",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Override how long to watch.",
    ),
) -> None:
    """Print each new reading as it arrives."""
    state = _get_state(ctx)
    interval = poll_interval if poll_interval is not None else state.config.poll_interval
    watch_timeout = timeout if timeout is not None else state.config.poll_timeout
    typer.echo(f"Watching {state.config.base_url} (interval={interval}s, timeout={watch_timeout}s)...")
    for payload in state.client.watch(interval=interval, timeout=watch_timeout):
        typer.echo(f"{payload.get('timestamp')}  {format_temperature(payload.get('temperature'))}")


if __name__ == "__main__":
    app()
