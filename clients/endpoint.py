"""Resolution of the base URL a reading client talks to."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, Tuple

from clients.errors import EndpointResolutionError


@dataclass(frozen=True)
class EndpointParams:
    service_key: str
    path: str = ""
    use_registry: bool = False
    url: str = ""


class Endpointer(Protocol):
    def resolve(self, params: EndpointParams) -> str:
        """Return the current base URL for ``params``."""
        ...


class StaticEndpointer:
    """Always resolves to the URL configured on the params."""

    def resolve(self, params: EndpointParams) -> str:
        return params.url


ServiceLookup = Callable[[str], Tuple[str, int]]


class RegistryEndpointer:
    """Looks up host and port of a service key on every resolution."""

    def __init__(self, lookup: ServiceLookup, scheme: str = "http") -> None:
        self._lookup = lookup
        self._scheme = scheme

    def resolve(self, params: EndpointParams) -> str:
        host, port = self._lookup(params.service_key)
        return f"{self._scheme}://{host}:{port}{params.path}"


class URLClient:
    """Produces the URL prefix for each request.

    The prefix is resolved again on every call, so endpoint changes made by
    service discovery take effect without rebuilding the client.
    """

    def __init__(self, params: EndpointParams, endpointer: Endpointer) -> None:
        self.params = params
        self._endpointer = endpointer

    def prefix(self) -> str:
        if not self.params.use_registry:
            url = self.params.url
        else:
            try:
                url = self._endpointer.resolve(self.params)
            except Exception as exc:
                raise EndpointResolutionError(
                    f"Unable to resolve endpoint for {self.params.service_key!r}: {exc}"
                ) from exc
        if not url:
            raise EndpointResolutionError(
                f"No URL available for service {self.params.service_key!r}."
            )
        return url.rstrip("/")
