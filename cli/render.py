from __future__ import annotations

from typing import Any, Iterable, Sequence

import typer

from models.reading import Reading


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_reading(reading: Reading) -> None:
    echo_heading("Reading")
    echo_key_values(
        [
            ("id", reading.id),
            ("device", reading.device),
            ("name", reading.name),
            ("value", reading.value),
            ("uomLabel", reading.uom_label or "-"),
            ("valueType", reading.value_type or "-"),
            ("labels", ", ".join(reading.labels) or "-"),
            ("created", reading.created),
        ]
    )


def render_readings(readings: Sequence[Reading]) -> None:
    echo_heading(f"Readings ({len(readings)})")
    if not readings:
        typer.echo("No readings found.")
        return
    for reading in readings:
        unit = f" {reading.uom_label}" if reading.uom_label else ""
        typer.echo(
            f"  - {reading.id} {reading.device}/{reading.name} = {reading.value}{unit}"
            f" @ {reading.created}"
        )
