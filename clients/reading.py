"""Client for the reading endpoints of the core-data service."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from clients.context import RequestContext
from clients.endpoint import EndpointParams, Endpointer, StaticEndpointer, URLClient
from clients.errors import ResponseDecodeError
from clients.transport import count_request, delete_request, get_request, post_json_request
from models.reading import Reading
from settings import get_settings

logger = logging.getLogger(__name__)

_READING_LIST = TypeAdapter(List[Reading])


class ReadingClient(Protocol):
    """Operations available against the reading endpoints."""

    def readings(self, ctx: Optional[RequestContext] = None) -> List[Reading]:
        """Return every reading."""
        ...

    def reading_count(self, ctx: Optional[RequestContext] = None) -> int:
        """Return the total number of readings."""
        ...

    def reading(self, reading_id: str, ctx: Optional[RequestContext] = None) -> Reading:
        """Return the reading with ``reading_id``."""
        ...

    def readings_for_device(
        self, device_id: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        """Return up to ``limit`` readings for a device."""
        ...

    def readings_for_name_and_device(
        self,
        name: str,
        device_id: str,
        limit: int,
        ctx: Optional[RequestContext] = None,
    ) -> List[Reading]:
        """Return up to ``limit`` readings for a device and value descriptor."""
        ...

    def readings_for_name(
        self, name: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        """Return up to ``limit`` readings for a value descriptor name."""
        ...

    def readings_for_uom_label(
        self, uom_label: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        """Return up to ``limit`` readings carrying a unit-of-measure label."""
        ...

    def readings_for_label(
        self, label: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        """Return up to ``limit`` readings carrying ``label``."""
        ...

    def readings_for_type(
        self, reading_type: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        """Return up to ``limit`` readings of a value type."""
        ...

    def readings_for_interval(
        self, start: int, end: int, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        """Return up to ``limit`` readings created between ``start`` and ``end``."""
        ...

    def add(self, reading: Reading, ctx: Optional[RequestContext] = None) -> str:
        """Store a new reading and return its identifier."""
        ...

    def delete(self, reading_id: str, ctx: Optional[RequestContext] = None) -> None:
        """Remove the reading with ``reading_id``."""
        ...

    def close(self) -> None:
        ...


def escape_segment(value: str) -> str:
    """Percent-encode a free-form path segment, including ``/``."""
    return quote(value, safe="")


def _require_id(reading_id: str) -> str:
    if not reading_id:
        raise ValueError("Reading id must not be empty.")
    return escape_segment(reading_id)


class RestReadingClient:
    """HTTP implementation of :class:`ReadingClient`.

    Holds no per-call state, so one instance can serve concurrent callers.
    """

    def __init__(
        self,
        params: EndpointParams,
        endpointer: Endpointer,
        http_client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self._url_client = URLClient(params, endpointer)
        if http_client is None:
            http_client = httpx.Client(timeout=timeout or get_settings().request_timeout)
        self._client = http_client

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RestReadingClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request_readings(self, suffix: str, ctx: Optional[RequestContext]) -> List[Reading]:
        ctx = ctx or RequestContext.background()
        url = self._url_client.prefix() + suffix
        body = get_request(self._client, url, ctx)
        if body.strip() in (b"", b"null"):
            return []
        try:
            readings = _READING_LIST.validate_json(body)
        except ValidationError as exc:
            raise ResponseDecodeError(
                f"Unable to decode readings from {url}: {exc}", body, fallback=[], url=url
            ) from exc
        logger.debug("Decoded readings", extra={"url": url, "reading_count": len(readings)})
        return readings

    def _request_reading(self, suffix: str, ctx: Optional[RequestContext]) -> Reading:
        ctx = ctx or RequestContext.background()
        url = self._url_client.prefix() + suffix
        body = get_request(self._client, url, ctx)
        try:
            return Reading.model_validate_json(body)
        except ValidationError as exc:
            raise ResponseDecodeError(
                f"Unable to decode reading from {url}: {exc}", body, fallback=Reading(), url=url
            ) from exc

    def readings(self, ctx: Optional[RequestContext] = None) -> List[Reading]:
        return self._request_readings("", ctx)

    def reading(self, reading_id: str, ctx: Optional[RequestContext] = None) -> Reading:
        return self._request_reading("/" + _require_id(reading_id), ctx)

    def reading_count(self, ctx: Optional[RequestContext] = None) -> int:
        url = self._url_client.prefix() + "/count"
        return count_request(self._client, url, ctx or RequestContext.background())

    def readings_for_device(
        self, device_id: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._request_readings(f"/device/{escape_segment(device_id)}/{limit:d}", ctx)

    def readings_for_name_and_device(
        self,
        name: str,
        device_id: str,
        limit: int,
        ctx: Optional[RequestContext] = None,
    ) -> List[Reading]:
        return self._request_readings(
            f"/name/{escape_segment(name)}/device/{escape_segment(device_id)}/{limit:d}",
            ctx,
        )

    def readings_for_name(
        self, name: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._request_readings(f"/name/{escape_segment(name)}/{limit:d}", ctx)

    def readings_for_uom_label(
        self, uom_label: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._request_readings(f"/uomlabel/{escape_segment(uom_label)}/{limit:d}", ctx)

    def readings_for_label(
        self, label: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._request_readings(f"/label/{escape_segment(label)}/{limit:d}", ctx)

    def readings_for_type(
        self, reading_type: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._request_readings(f"/type/{escape_segment(reading_type)}/{limit:d}", ctx)

    def readings_for_interval(
        self, start: int, end: int, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._request_readings(f"/{start:d}/{end:d}/{limit:d}", ctx)

    def add(self, reading: Reading, ctx: Optional[RequestContext] = None) -> str:
        url = self._url_client.prefix()
        return post_json_request(
            self._client, url, reading.to_payload(), ctx or RequestContext.background()
        )

    def delete(self, reading_id: str, ctx: Optional[RequestContext] = None) -> None:
        suffix = "/id/" + _require_id(reading_id)
        url = self._url_client.prefix() + suffix
        delete_request(self._client, url, ctx or RequestContext.background())


def build_default_client(
    base_url: Optional[str] = None, timeout: Optional[float] = None
) -> RestReadingClient:
    """Wire a new client against the configured static endpoint.

    Every call returns a fresh client that owns its connection pool; callers
    close it when done.
    """
    settings = get_settings()
    params = EndpointParams(
        service_key=settings.service_key,
        url=base_url if base_url is not None else settings.service_url,
    )
    return RestReadingClient(params, StaticEndpointer(), timeout=timeout)
