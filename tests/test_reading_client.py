from __future__ import annotations

import json
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List
from urllib.parse import unquote

import httpx
import pytest

from clients.context import RequestContext
from clients.endpoint import EndpointParams, RegistryEndpointer, StaticEndpointer
from clients.errors import (
    EndpointResolutionError,
    NotFoundError,
    RequestCancelledError,
    RequestError,
    ResponseDecodeError,
    ServiceResponseError,
)
from clients.reading import RestReadingClient
from models.reading import Reading

BASE_URL = "http://core-data:48080/api/v1/reading"

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingService:
    """Fake service that records requests and replies with a canned response."""

    def __init__(self, respond: Handler) -> None:
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    @property
    def last_path(self) -> str:
        return self.requests[-1].url.raw_path.decode("ascii")


def _reading_json(index: int) -> dict:
    return {
        "id": f"r-{index}",
        "device": "dev-1",
        "name": "Temperature",
        "value": str(20 + index),
        "created": 1700000000000 + index,
    }


@pytest.fixture()
def make_client() -> Iterator[Callable[[Handler], tuple[RestReadingClient, RecordingService]]]:
    clients: List[RestReadingClient] = []

    def factory(respond: Handler) -> tuple[RestReadingClient, RecordingService]:
        service = RecordingService(respond)
        http_client = httpx.Client(transport=httpx.MockTransport(service))
        params = EndpointParams(service_key="core-data", url=BASE_URL)
        client = RestReadingClient(params, StaticEndpointer(), http_client=http_client)
        clients.append(client)
        return client, service

    yield factory

    for client in clients:
        client.close()


def _json_list(count: int) -> Handler:
    return lambda _request: httpx.Response(200, json=[_reading_json(i) for i in range(count)])


def test_readings_for_device_returns_service_order(make_client) -> None:
    client, service = make_client(_json_list(3))

    readings = client.readings_for_device("dev-1", 5)

    assert [reading.id for reading in readings] == ["r-0", "r-1", "r-2"]
    assert all(isinstance(reading, Reading) for reading in readings)
    assert service.last_path == "/api/v1/reading/device/dev-1/5"
    assert service.requests[-1].method == "GET"


@pytest.mark.parametrize(
    ("call", "expected_path"),
    [
        (lambda c: c.readings(), "/api/v1/reading"),
        (lambda c: c.readings_for_name("Temperature", 10), "/api/v1/reading/name/Temperature/10"),
        (
            lambda c: c.readings_for_name_and_device("Temperature", "dev-1", 0),
            "/api/v1/reading/name/Temperature/device/dev-1/0",
        ),
        (lambda c: c.readings_for_uom_label("degC", 7), "/api/v1/reading/uomlabel/degC/7"),
        (lambda c: c.readings_for_label("hvac", 3), "/api/v1/reading/label/hvac/3"),
        (lambda c: c.readings_for_type("Float64", 2), "/api/v1/reading/type/Float64/2"),
        (
            lambda c: c.readings_for_interval(1700000000000, 1700000360000, 25),
            "/api/v1/reading/1700000000000/1700000360000/25",
        ),
    ],
)
def test_list_operations_build_expected_paths(make_client, call, expected_path) -> None:
    client, service = make_client(_json_list(1))

    readings = call(client)

    assert len(readings) == 1
    assert service.last_path == expected_path


def test_free_text_segments_are_percent_encoded(make_client) -> None:
    client, service = make_client(_json_list(0))
    name = "Room temp/North wing"
    device_id = "floor 2/dev?#1"

    client.readings_for_name_and_device(name, device_id, 5)

    segments = service.last_path.split("/")
    assert segments[-5:-3] == ["name", "Room%20temp%2FNorth%20wing"]
    assert unquote(segments[-4]) == name
    assert segments[-3] == "device"
    assert unquote(segments[-2]) == device_id
    assert segments[-1] == "5"


@pytest.mark.parametrize("body", [b"", b"   ", b"null"])
def test_empty_list_body_decodes_to_empty_list(make_client, body: bytes) -> None:
    client, _service = make_client(lambda _request: httpx.Response(200, content=body))

    assert client.readings_for_label("hvac", 10) == []


def test_list_decode_failure_carries_empty_fallback(make_client) -> None:
    client, _service = make_client(lambda _request: httpx.Response(200, json={"id": "r-1"}))

    with pytest.raises(ResponseDecodeError) as excinfo:
        client.readings()

    assert excinfo.value.fallback == []
    assert isinstance(excinfo.value, RequestError)


def test_list_transport_error_is_not_masked(make_client) -> None:
    client, _service = make_client(lambda _request: httpx.Response(500, text="database offline"))

    with pytest.raises(ServiceResponseError) as excinfo:
        client.readings_for_device("dev-1", 5)

    assert excinfo.value.status_code == 500
    assert "database offline" in str(excinfo.value)


def test_reading_by_id(make_client) -> None:
    client, service = make_client(lambda _request: httpx.Response(200, json=_reading_json(4)))

    reading = client.reading("r-4")

    assert reading.id == "r-4"
    assert reading.value == "24"
    assert service.last_path == "/api/v1/reading/r-4"


def test_reading_decode_failure_carries_zero_value(make_client) -> None:
    client, _service = make_client(lambda _request: httpx.Response(200, content=b"<html>"))

    with pytest.raises(ResponseDecodeError) as excinfo:
        client.reading("r-1")

    assert excinfo.value.fallback == Reading()
    assert excinfo.value.body == b"<html>"


def test_missing_reading_raises_not_found(make_client) -> None:
    client, _service = make_client(lambda _request: httpx.Response(404, text="no reading"))

    with pytest.raises(NotFoundError) as excinfo:
        client.reading("missing")

    assert excinfo.value.status_code == 404
    assert isinstance(excinfo.value, RequestError)


def test_empty_id_is_rejected_before_any_request(make_client) -> None:
    client, service = make_client(_json_list(0))

    with pytest.raises(ValueError):
        client.reading("")
    with pytest.raises(ValueError):
        client.delete("")

    assert service.requests == []


def test_reading_count(make_client) -> None:
    client, service = make_client(lambda _request: httpx.Response(200, content=b"42\n"))

    assert client.reading_count() == 42
    assert service.last_path == "/api/v1/reading/count"


@pytest.mark.parametrize("body", [b"forty-two", b"-1", b"4.5", b""])
def test_reading_count_rejects_non_counts(make_client, body: bytes) -> None:
    client, _service = make_client(lambda _request: httpx.Response(200, content=body))

    with pytest.raises(ResponseDecodeError) as excinfo:
        client.reading_count()

    assert excinfo.value.fallback == 0


@pytest.mark.parametrize("body", [b'"abc-123"', b"abc-123", b"abc-123\n"])
def test_add_returns_new_identifier(make_client, body: bytes) -> None:
    client, service = make_client(lambda _request: httpx.Response(200, content=body))
    reading = Reading(device="dev-1", name="Temperature", value="21.5", labels=["hvac"])

    assert client.add(reading) == "abc-123"

    request = service.requests[-1]
    assert request.method == "POST"
    assert service.last_path == "/api/v1/reading"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {
        "device": "dev-1",
        "name": "Temperature",
        "value": "21.5",
        "labels": ["hvac"],
    }


def test_delete_targets_id_route(make_client) -> None:
    client, service = make_client(lambda _request: httpx.Response(200, content=b"true"))

    assert client.delete("r 1") is None
    assert service.requests[-1].method == "DELETE"
    assert service.last_path == "/api/v1/reading/id/r%201"


def test_delete_missing_reading(make_client) -> None:
    client, _service = make_client(lambda _request: httpx.Response(404))

    with pytest.raises(NotFoundError):
        client.delete("r-1")


def test_network_failure_surfaces_as_request_error(make_client) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, _service = make_client(refuse)

    with pytest.raises(RequestError, match="connection refused"):
        client.readings()


def test_transport_timeout_without_deadline_is_request_error(make_client) -> None:
    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    client, _service = make_client(slow)

    with pytest.raises(RequestError) as excinfo:
        client.reading_count()

    assert not isinstance(excinfo.value, RequestCancelledError)


def test_resolution_failure_short_circuits() -> None:
    service = RecordingService(_json_list(1))

    def lookup(service_key: str) -> tuple[str, int]:
        raise LookupError("registry unavailable")

    params = EndpointParams(service_key="core-data", path="/api/v1/reading", use_registry=True)
    with RestReadingClient(
        params,
        RegistryEndpointer(lookup),
        http_client=httpx.Client(transport=httpx.MockTransport(service)),
    ) as client:
        with pytest.raises(EndpointResolutionError):
            client.readings_for_device("dev-1", 5)
        with pytest.raises(EndpointResolutionError):
            client.add(Reading(device="dev-1"))

    assert service.requests == []


def test_endpoint_is_resolved_per_call() -> None:
    service = RecordingService(_json_list(0))
    hosts = iter([("core-a", 48080), ("core-b", 48080)])
    params = EndpointParams(service_key="core-data", path="/api/v1/reading", use_registry=True)

    with RestReadingClient(
        params,
        RegistryEndpointer(lambda _key: next(hosts)),
        http_client=httpx.Client(transport=httpx.MockTransport(service)),
    ) as client:
        client.readings()
        client.readings()

    assert [request.url.host for request in service.requests] == ["core-a", "core-b"]


def test_cancelled_context_sends_nothing(make_client) -> None:
    client, service = make_client(_json_list(3))
    ctx = RequestContext()
    ctx.cancel()

    with pytest.raises(RequestCancelledError, match="canceled"):
        client.readings_for_device("dev-1", 5, ctx)

    assert service.requests == []


def test_cancellation_before_response_discards_result(make_client) -> None:
    ctx = RequestContext()

    def cancel_then_reply(_request: httpx.Request) -> httpx.Response:
        ctx.cancel()
        return httpx.Response(200, json=[_reading_json(1)])

    client, service = make_client(cancel_then_reply)

    with pytest.raises(RequestCancelledError):
        client.readings_for_device("dev-1", 5, ctx)

    assert len(service.requests) == 1


def test_expired_deadline_is_cancellation(make_client) -> None:
    client, service = make_client(_json_list(1))

    with pytest.raises(RequestCancelledError, match="deadline"):
        client.readings(RequestContext(timeout=0))

    assert service.requests == []


def test_correlation_id_is_forwarded(make_client) -> None:
    client, service = make_client(_json_list(0))

    client.readings(RequestContext(timeout=5.0, correlation_id="corr-77"))
    client.readings()

    assert service.requests[0].headers["X-Correlation-ID"] == "corr-77"
    assert "X-Correlation-ID" not in service.requests[1].headers


def test_concurrent_calls_share_one_client(make_client) -> None:
    def by_device(request: httpx.Request) -> httpx.Response:
        device = unquote(request.url.raw_path.decode("ascii").split("/")[-2])
        return httpx.Response(200, json=[{"id": f"{device}-r", "device": device}])

    client, service = make_client(by_device)
    devices = [f"dev {index}" for index in range(16)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda device: client.readings_for_device(device, 1), devices))

    assert [result[0].device for result in results] == devices
    assert len(service.requests) == len(devices)


def test_error_responses_are_logged(make_client, caplog) -> None:
    client, _service = make_client(lambda _request: httpx.Response(503, text="busy"))

    with caplog.at_level(logging.WARNING, logger="clients.transport"):
        with pytest.raises(ServiceResponseError):
            client.readings_for_type("Float64", 5)

    record = caplog.records[-1]
    assert record.message == "Service returned an error"
    assert record.status_code == 503
    assert record.url == BASE_URL + "/type/Float64/5"


class StalledBody(httpx.SyncByteStream):
    """Response body that sends one chunk, stalls, then times out."""

    def __init__(self, stall: Callable[[], None]) -> None:
        self.stall = stall

    def __iter__(self) -> Iterator[bytes]:
        yield b"["
        self.stall()
        raise httpx.ReadTimeout("read timed out")


def test_deadline_during_body_is_cancellation(make_client) -> None:
    client, _service = make_client(
        lambda _request: httpx.Response(200, stream=StalledBody(lambda: time.sleep(0.3)))
    )

    with pytest.raises(RequestCancelledError, match="deadline exceeded"):
        client.readings(RequestContext(timeout=0.1))


def test_cancel_during_body_reports_cancel_not_deadline(make_client) -> None:
    ctx = RequestContext(timeout=5.0)
    client, _service = make_client(
        lambda _request: httpx.Response(200, stream=StalledBody(ctx.cancel))
    )

    with pytest.raises(RequestCancelledError, match="context canceled"):
        client.readings(ctx)


def test_cancel_from_another_thread_aborts_in_flight_request(make_client) -> None:
    def stall(_request: httpx.Request) -> httpx.Response:
        time.sleep(1.0)
        return httpx.Response(200, json=[_reading_json(1)])

    client, _service = make_client(stall)
    ctx = RequestContext()
    timer = threading.Timer(0.1, ctx.cancel)
    started = time.monotonic()
    timer.start()
    try:
        with pytest.raises(RequestCancelledError, match="context canceled"):
            client.readings_for_device("dev-1", 5, ctx)
    finally:
        timer.cancel()

    assert time.monotonic() - started < 0.5


@pytest.mark.parametrize("body", [b'[{"id": "r-1"', b'[{"id": 7}]', b"\xff\xfe"])
def test_malformed_list_body_is_decode_error(make_client, body: bytes) -> None:
    client, _service = make_client(lambda _request: httpx.Response(200, content=body))

    with pytest.raises(ResponseDecodeError) as excinfo:
        client.readings_for_type("Float64", 2)

    assert excinfo.value.fallback == []
    assert excinfo.value.body == body
