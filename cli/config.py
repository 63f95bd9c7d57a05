from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from settings import get_settings

DEFAULT_LIMIT = 50

_BASE_URL_ENV = "API_BASE_URL"
_LIMIT_ENV = "READINGS_CLI_LIMIT"


@dataclass(frozen=True)
class CLIConfig:
    base_url: str
    timeout: float
    limit: int = DEFAULT_LIMIT
    correlation_id: Optional[str] = None


def _read_limit(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def load_config(
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    limit: Optional[int] = None,
    correlation_id: Optional[str] = None,
) -> CLIConfig:
    settings = get_settings()
    url = base_url or os.getenv(_BASE_URL_ENV) or settings.service_url
    if timeout is None or timeout <= 0:
        timeout = settings.request_timeout
    if limit is None:
        limit = _read_limit(os.getenv(_LIMIT_ENV), DEFAULT_LIMIT)
    return CLIConfig(
        base_url=url.rstrip("/"),
        timeout=timeout,
        limit=limit,
        correlation_id=correlation_id,
    )
