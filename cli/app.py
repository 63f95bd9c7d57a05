from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

import typer

from cli.client import build_client, call_client, new_context
from cli.config import CLIConfig, load_config
from cli.render import render_reading, render_readings
from clients.reading import ReadingClient
from logging_config import configure_logging
from models.reading import Reading


@dataclass
class CLIState:
    config: CLIConfig
    client: ReadingClient


app = typer.Typer(
    help="Query and manage readings stored by the core-data service.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _limit(state: CLIState, limit: Optional[int]) -> int:
    return limit if limit is not None else state.config.limit


LIMIT_OPTION = typer.Option(
    None,
    "--limit",
    "-n",
    help="Maximum number of readings to return (defaults to READINGS_CLI_LIMIT or 50).",
)


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Reading endpoint base URL (defaults to API_BASE_URL or READINGS_SERVICE_URL).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds before a request is abandoned.",
    ),
    correlation_id: Optional[str] = typer.Option(
        None,
        "--correlation-id",
        help="Value sent in the X-Correlation-ID header.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    config = load_config(base_url=base_url, timeout=timeout, correlation_id=correlation_id)
    client = build_client(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("list")
def list_command(ctx: typer.Context) -> None:
    """List every reading."""
    state = _get_state(ctx)
    readings = call_client(lambda: state.client.readings(new_context(state.config)))
    render_readings(readings)


@app.command("count")
def count_command(ctx: typer.Context) -> None:
    """Show the total number of readings."""
    state = _get_state(ctx)
    count = call_client(lambda: state.client.reading_count(new_context(state.config)))
    typer.echo(f"count: {count}")


@app.command("get")
def get_command(
    ctx: typer.Context,
    reading_id: str = typer.Argument(..., help="Identifier of the reading."),
) -> None:
    """Fetch a single reading by id."""
    state = _get_state(ctx)
    reading = call_client(lambda: state.client.reading(reading_id, new_context(state.config)))
    render_reading(reading)


@app.command("device")
def device_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device that produced the readings."),
    limit: Optional[int] = LIMIT_OPTION,
) -> None:
    """List readings produced by a device."""
    state = _get_state(ctx)
    readings = call_client(
        lambda: state.client.readings_for_device(
            device_id, _limit(state, limit), new_context(state.config)
        )
    )
    render_readings(readings)


@app.command("name")
def name_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Value descriptor name."),
    device_id: Optional[str] = typer.Option(
        None, "--device", "-d", help="Restrict to readings from this device."
    ),
    limit: Optional[int] = LIMIT_OPTION,
) -> None:
    """List readings for a value descriptor, optionally narrowed to a device."""
    state = _get_state(ctx)
    count = _limit(state, limit)
    if device_id is None:
        readings = call_client(
            lambda: state.client.readings_for_name(name, count, new_context(state.config))
        )
    else:
        readings = call_client(
            lambda: state.client.readings_for_name_and_device(
                name, device_id, count, new_context(state.config)
            )
        )
    render_readings(readings)


@app.command("uom-label")
def uom_label_command(
    ctx: typer.Context,
    uom_label: str = typer.Argument(..., help="Unit-of-measure label."),
    limit: Optional[int] = LIMIT_OPTION,
) -> None:
    """List readings carrying a unit-of-measure label."""
    state = _get_state(ctx)
    readings = call_client(
        lambda: state.client.readings_for_uom_label(
            uom_label, _limit(state, limit), new_context(state.config)
        )
    )
    render_readings(readings)


@app.command("label")
def label_command(
    ctx: typer.Context,
    label: str = typer.Argument(..., help="Label attached to the readings."),
    limit: Optional[int] = LIMIT_OPTION,
) -> None:
    """List readings carrying a label."""
    state = _get_state(ctx)
    readings = call_client(
        lambda: state.client.readings_for_label(
            label, _limit(state, limit), new_context(state.config)
        )
    )
    render_readings(readings)


@app.command("type")
def type_command(
    ctx: typer.Context,
    reading_type: str = typer.Argument(..., help="Value type, e.g. Float64."),
    limit: Optional[int] = LIMIT_OPTION,
) -> None:
    """List readings of a value type."""
    state = _get_state(ctx)
    readings = call_client(
        lambda: state.client.readings_for_type(
            reading_type, _limit(state, limit), new_context(state.config)
        )
    )
    render_readings(readings)


@app.command("interval")
def interval_command(
    ctx: typer.Context,
    start: int = typer.Argument(..., help="Start of the interval (epoch milliseconds)."),
    end: int = typer.Argument(..., help="End of the interval (epoch milliseconds)."),
    limit: Optional[int] = LIMIT_OPTION,
) -> None:
    """List readings created within a time interval."""
    state = _get_state(ctx)
    readings = call_client(
        lambda: state.client.readings_for_interval(
            start, end, _limit(state, limit), new_context(state.config)
        )
    )
    render_readings(readings)


@app.command("add")
def add_command(
    ctx: typer.Context,
    device: str = typer.Option(..., "--device", help="Originating device."),
    name: str = typer.Option(..., "--name", help="Value descriptor name."),
    value: str = typer.Option(..., "--value", help="Reading value as text."),
    uom_label: Optional[str] = typer.Option(None, "--uom-label", help="Unit-of-measure label."),
    value_type: Optional[str] = typer.Option(None, "--value-type", help="Value type tag."),
    labels: Optional[List[str]] = typer.Option(
        None, "--label", help="Label to attach; repeat for several."
    ),
    created: Optional[int] = typer.Option(
        None, "--created", help="Creation timestamp (epoch milliseconds)."
    ),
) -> None:
    """Submit a new reading and print its identifier."""
    state = _get_state(ctx)
    fields = {"device": device, "name": name, "value": value}
    if uom_label is not None:
        fields["uom_label"] = uom_label
    if value_type is not None:
        fields["value_type"] = value_type
    if labels:
        fields["labels"] = list(labels)
    if created is not None:
        fields["created"] = created
    reading = Reading(**fields)
    reading_id = call_client(lambda: state.client.add(reading, new_context(state.config)))
    typer.secho(f"Reading added. id={reading_id}", fg=typer.colors.GREEN)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    reading_id: str = typer.Argument(..., help="Identifier of the reading to delete."),
) -> None:
    """Delete a reading by id."""
    state = _get_state(ctx)
    call_client(lambda: state.client.delete(reading_id, new_context(state.config)))
    typer.secho(f"Reading {reading_id} deleted.", fg=typer.colors.GREEN)
