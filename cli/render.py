from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

import typer

from models.records import StabilityVerdict


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_accepted(payload: Dict[str, Any]) -> None:
    echo_heading("Telemetry Accepted")
    echo_key_values(
        [
            ("device_id", payload.get("device_id")),
            ("timestamp", payload.get("timestamp")),
            ("evaluation", payload.get("evaluation")),
        ]
    )


def render_alerts(device_id: str, alerts: List[Dict[str, Any]]) -> None:
    echo_heading(f"Alerts for {device_id}")
    if not alerts:
        typer.echo("No alerts recorded.")
        return
    for alert in alerts:
        line = (
            f"  - {alert.get('created_at')} {alert.get('outcome')} "
            f"(attempts={alert.get('attempts')}, status={alert.get('status_code')})"
        )
        if alert.get("error"):
            line += f": {alert['error']}"
        typer.echo(line)


def render_verdict(
    values: Sequence[float], smoothed: Sequence[float], verdict: StabilityVerdict
) -> None:
    echo_heading("Stability Check")
    echo_key_values(
        [
            ("samples", len(values)),
            ("smoothed", ", ".join(f"{value:.4f}" for value in smoothed)),
            ("normalized_derivative", verdict.normalized_derivative),
        ]
    )
    if verdict.is_stable:
        typer.secho("stable", fg=typer.colors.GREEN)
    else:
        typer.secho("not stable", fg=typer.colors.YELLOW)
