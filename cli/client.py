from __future__ import annotations

from typing import Callable, NoReturn, TypeVar

import typer

from cli.config import CLIConfig
from clients.context import RequestContext
from clients.errors import ReadingClientError, ServiceResponseError
from clients.reading import ReadingClient, build_default_client

T = TypeVar("T")


def build_client(config: CLIConfig) -> ReadingClient:
    return build_default_client(base_url=config.base_url, timeout=config.timeout)


def new_context(config: CLIConfig) -> RequestContext:
    return RequestContext(timeout=config.timeout, correlation_id=config.correlation_id)


def call_client(operation: Callable[[], T]) -> T:
    """Run a client call, turning client failures into a red message and exit code 1."""
    try:
        return operation()
    except ServiceResponseError as exc:
        _fail(str(exc))
    except ReadingClientError as exc:
        _fail(f"Request failed: {exc}")
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)
