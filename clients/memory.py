"""In-memory stand-in for the reading service, used as a test double."""

from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from clients.context import RequestContext
from clients.errors import NotFoundError
from models.reading import Reading


class InMemoryReadingClient:
    """Implements the reading client operations over a local dictionary.

    Readings are kept in insertion order and handed out as deep copies, so
    callers can never mutate the stored state.
    """

    def __init__(self, readings: Optional[List[Reading]] = None) -> None:
        self._items: Dict[str, Reading] = {}
        self._lock = Lock()
        for reading in readings or []:
            self._store(reading)

    def _store(self, reading: Reading) -> str:
        stored = reading.model_copy(deep=True)
        if not stored.id:
            stored.id = str(uuid4())
        if not stored.created:
            stored.created = int(time.time() * 1000)
        self._items[stored.id] = stored
        return stored.id

    def _select(
        self,
        predicate: Callable[[Reading], bool],
        limit: Optional[int],
        ctx: Optional[RequestContext],
    ) -> List[Reading]:
        (ctx or RequestContext.background()).raise_if_cancelled()
        with self._lock:
            matches = [item.model_copy(deep=True) for item in self._items.values() if predicate(item)]
        if limit is not None:
            matches = matches[: max(limit, 0)]
        return matches

    def readings(self, ctx: Optional[RequestContext] = None) -> List[Reading]:
        return self._select(lambda _r: True, None, ctx)

    def reading_count(self, ctx: Optional[RequestContext] = None) -> int:
        (ctx or RequestContext.background()).raise_if_cancelled()
        with self._lock:
            return len(self._items)

    def reading(self, reading_id: str, ctx: Optional[RequestContext] = None) -> Reading:
        if not reading_id:
            raise ValueError("Reading id must not be empty.")
        (ctx or RequestContext.background()).raise_if_cancelled()
        with self._lock:
            item = self._items.get(reading_id)
            if item is None:
                raise NotFoundError(404, f"Reading {reading_id!r} not found.")
            return item.model_copy(deep=True)

    def readings_for_device(
        self, device_id: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._select(lambda r: r.device == device_id, limit, ctx)

    def readings_for_name_and_device(
        self,
        name: str,
        device_id: str,
        limit: int,
        ctx: Optional[RequestContext] = None,
    ) -> List[Reading]:
        return self._select(lambda r: r.name == name and r.device == device_id, limit, ctx)

    def readings_for_name(
        self, name: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._select(lambda r: r.name == name, limit, ctx)

    def readings_for_uom_label(
        self, uom_label: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._select(lambda r: r.uom_label == uom_label, limit, ctx)

    def readings_for_label(
        self, label: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._select(lambda r: label in r.labels, limit, ctx)

    def readings_for_type(
        self, reading_type: str, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._select(lambda r: r.value_type == reading_type, limit, ctx)

    def readings_for_interval(
        self, start: int, end: int, limit: int, ctx: Optional[RequestContext] = None
    ) -> List[Reading]:
        return self._select(lambda r: start <= r.created <= end, limit, ctx)

    def add(self, reading: Reading, ctx: Optional[RequestContext] = None) -> str:
        (ctx or RequestContext.background()).raise_if_cancelled()
        with self._lock:
            return self._store(reading)

    def delete(self, reading_id: str, ctx: Optional[RequestContext] = None) -> None:
        if not reading_id:
            raise ValueError("Reading id must not be empty.")
        (ctx or RequestContext.background()).raise_if_cancelled()
        with self._lock:
            if self._items.pop(reading_id, None) is None:
                raise NotFoundError(404, f"Reading {reading_id!r} not found.")

    def close(self) -> None:
        return None
