from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_accepted, render_alerts, render_verdict
from services.smoothing import smooth
from services.stability import detect_stability
from settings import get_settings


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the stability trigger service.",
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
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("send")
def send_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device that produced the reading."),
    value: float = typer.Argument(..., help="Measured value."),
    field: Optional[str] = typer.Option(
        None,
        "--field",
        "-f",
        help="Payload field for the value (defaults to METRIC_FIELD env or 'temp').",
    ),
) -> None:
    """Post a single telemetry reading."""
    state = _get_state(ctx)
    field_name = field or get_settings().metric_field
    typer.echo(f"Sending {field_name}={value} for {device_id} to {state.config.base_url} ...")
    payload = state.client.send_telemetry(device_id, {field_name: value})
    render_accepted(payload)


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device to list notification attempts for."),
) -> None:
    """List notification attempts recorded for a device."""
    state = _get_state(ctx)
    render_alerts(device_id, state.client.get_alerts(device_id))


@app.command("check")
def check_command(
    values: List[float] = typer.Argument(..., help="Raw readings, oldest first."),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", help="Normalized derivative threshold."
    ),
    window: Optional[int] = typer.Option(
        None, "--window", "-w", min=1, help="Moving-average window size."
    ),
) -> None:
    """Run the stability test locally against a series of readings."""
    settings = get_settings()
    smoothed = smooth(values, window or settings.smoothing_window)
    verdict = detect_stability(
        smoothed, threshold if threshold is not None else settings.stability_threshold
    )
    render_verdict(values, smoothed, verdict)
    if not verdict.is_stable:
        raise typer.Exit(code=1)
