from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache


_SERVICE_URL_ENV = "READINGS_SERVICE_URL"
_SERVICE_KEY_ENV = "READINGS_SERVICE_KEY"
_REQUEST_TIMEOUT_ENV = "READINGS_REQUEST_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_SERVICE_URL = "http://localhost:48080/api/v1/reading"
DEFAULT_SERVICE_KEY = "edgex-core-data"


@dataclass(frozen=True)
class Settings:
    service_url: str
    service_key: str
    request_timeout: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_timeout(default: float) -> float:
    value = os.getenv(_REQUEST_TIMEOUT_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        service_url=_read_str_env(_SERVICE_URL_ENV, DEFAULT_SERVICE_URL).rstrip("/"),
        service_key=_read_str_env(_SERVICE_KEY_ENV, DEFAULT_SERVICE_KEY),
        request_timeout=_read_timeout(30.0),
        log_level=_read_log_level("INFO"),
    )
