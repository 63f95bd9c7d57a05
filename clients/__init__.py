"""Typed clients for the core-data reading endpoints."""

from clients.context import RequestContext
from clients.endpoint import EndpointParams, RegistryEndpointer, StaticEndpointer
from clients.errors import (
    EndpointResolutionError,
    NotFoundError,
    ReadingClientError,
    RequestCancelledError,
    RequestError,
    ResponseDecodeError,
    ServiceResponseError,
)
from clients.memory import InMemoryReadingClient
from clients.reading import ReadingClient, RestReadingClient, build_default_client

__all__ = [
    "EndpointParams",
    "EndpointResolutionError",
    "InMemoryReadingClient",
    "NotFoundError",
    "ReadingClient",
    "ReadingClientError",
    "RegistryEndpointer",
    "RequestCancelledError",
    "RequestContext",
    "RequestError",
    "ResponseDecodeError",
    "RestReadingClient",
    "ServiceResponseError",
    "StaticEndpointer",
    "build_default_client",
]
