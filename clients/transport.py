"""Single-shot HTTP helpers shared by the resource clients."""

from __future__ import annotations

import json
import logging
import time
from concurrent.futures import Future
from threading import Event, Thread
from typing import Any, Dict, Optional, Tuple

import httpx

from clients.context import RequestContext
from clients.errors import (
    NotFoundError,
    RequestError,
    ResponseDecodeError,
    ServiceResponseError,
)

CORRELATION_HEADER = "X-Correlation-ID"

logger = logging.getLogger(__name__)


def _headers(ctx: RequestContext) -> Dict[str, str]:
    if ctx.correlation_id:
        return {CORRELATION_HEADER: ctx.correlation_id}
    return {}


def _timeout(ctx: RequestContext, client: httpx.Client) -> httpx.Timeout:
    remaining = ctx.remaining()
    if remaining is None:
        return client.timeout
    return httpx.Timeout(remaining)


def _exchange(
    client: httpx.Client, request: httpx.Request, ctx: RequestContext
) -> Tuple[int, bytes]:
    response = client.send(request, stream=True)
    try:
        chunks = []
        for chunk in response.iter_bytes():
            if ctx.cancelled:
                break
            chunks.append(chunk)
    finally:
        response.close()
    return response.status_code, b"".join(chunks)


def _await_exchange(
    client: httpx.Client, request: httpx.Request, ctx: RequestContext
) -> Tuple[int, bytes]:
    outcome: Future[Tuple[int, bytes]] = Future()

    def run() -> None:
        try:
            outcome.set_result(_exchange(client, request, ctx))
        except BaseException as exc:
            outcome.set_exception(exc)

    wake = Event()
    outcome.add_done_callback(lambda _f: wake.set())
    remove_callback = ctx.on_cancel(wake.set)
    Thread(target=run, name="readings-request", daemon=True).start()
    try:
        wake.wait(ctx.remaining())
    finally:
        remove_callback()
    if not outcome.done():
        # The worker notices the cancelled context at its next chunk and
        # closes the response; the caller does not wait for it.
        raise ctx.cancellation_error(str(request.url))
    return outcome.result()


def send_request(
    client: httpx.Client,
    method: str,
    url: str,
    ctx: RequestContext,
    *,
    json_body: Optional[Any] = None,
) -> bytes:
    """Issue one request and return the raw body of a successful response.

    The exchange runs on a worker thread while the caller waits on the
    context, so ``cancel()`` or an expired deadline returns control at once
    and the response is discarded.
    """
    ctx.raise_if_cancelled(url)
    request = client.build_request(
        method,
        url,
        json=json_body,
        headers=_headers(ctx),
        timeout=_timeout(ctx, client),
    )
    log_extra = {"method": method, "url": url, "correlation_id": ctx.correlation_id}
    logger.debug("Sending request", extra=log_extra)
    started = time.perf_counter()

    try:
        status_code, body = _await_exchange(client, request, ctx)
    except httpx.TimeoutException as exc:
        if ctx.cancelled:
            raise ctx.cancellation_error(url) from exc
        logger.warning("Request timed out", extra=log_extra)
        raise RequestError(f"Request to {url} timed out: {exc}", url=url) from exc
    except httpx.HTTPError as exc:
        if ctx.cancelled:
            raise ctx.cancellation_error(url) from exc
        logger.warning("Request failed", extra=log_extra)
        raise RequestError(f"Request to {url} failed: {exc}", url=url) from exc
    ctx.raise_if_cancelled(url)

    elapsed_ms = int((time.perf_counter() - started) * 1000)
    logger.debug(
        "Received response",
        extra={**log_extra, "status_code": status_code, "elapsed_ms": elapsed_ms},
    )

    if not httpx.codes.is_success(status_code):
        logger.warning(
            "Service returned an error",
            extra={**log_extra, "status_code": status_code},
        )
        text = body.decode("utf-8", errors="replace")
        if status_code == httpx.codes.NOT_FOUND:
            raise NotFoundError(status_code, text, url=url)
        raise ServiceResponseError(status_code, text, url=url)
    return body


def get_request(client: httpx.Client, url: str, ctx: RequestContext) -> bytes:
    return send_request(client, "GET", url, ctx)


def count_request(client: httpx.Client, url: str, ctx: RequestContext) -> int:
    body = get_request(client, url, ctx)
    try:
        count = json.loads(body)
    except ValueError as exc:
        raise ResponseDecodeError(
            f"Count response is not a number: {body[:64]!r}", body, fallback=0, url=url
        ) from exc
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ResponseDecodeError(
            f"Count response is not a non-negative integer: {body[:64]!r}",
            body,
            fallback=0,
            url=url,
        )
    return count


def post_json_request(
    client: httpx.Client, url: str, payload: Any, ctx: RequestContext
) -> str:
    """POST ``payload`` as JSON and return the response body as text.

    A body holding a JSON string literal is unwrapped.
    """
    body = send_request(client, "POST", url, ctx, json_body=payload)
    text = body.decode("utf-8", errors="replace").strip()
    if text.startswith('"'):
        try:
            decoded = json.loads(text)
        except ValueError:
            return text
        if isinstance(decoded, str):
            return decoded
    return text


def delete_request(client: httpx.Client, url: str, ctx: RequestContext) -> None:
    send_request(client, "DELETE", url, ctx)
