"""Exceptions raised by the readings client."""

from __future__ import annotations

from typing import Any, Optional


class ReadingClientError(Exception):
    """Base for every failure surfaced by a reading client."""


class EndpointResolutionError(ReadingClientError):
    """The base URL of the service could not be determined."""


class RequestError(ReadingClientError):
    """A request failed on the network, at the service, or while decoding."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url


class ServiceResponseError(RequestError):
    """The service answered with a non-success status code."""

    def __init__(self, status_code: int, body: str, url: Optional[str] = None) -> None:
        detail = body.strip() or "no detail provided."
        super().__init__(f"Request failed with status {status_code}: {detail}", url=url)
        self.status_code = status_code
        self.body = body


class NotFoundError(ServiceResponseError):
    """The requested reading does not exist."""


class ResponseDecodeError(RequestError):
    """The response body could not be decoded into the expected type.

    ``fallback`` holds the zero value of the expected result.
    """

    def __init__(
        self,
        message: str,
        body: bytes,
        fallback: Any = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(message, url=url)
        self.body = body
        self.fallback = fallback


class RequestCancelledError(RequestError):
    """The call context was cancelled or its deadline passed."""
