from __future__ import annotations

import time
from threading import Event, Lock
from typing import Callable, List, Optional

from clients.errors import RequestCancelledError


class RequestContext:
    """Cancellation and deadline state threaded through a single call.

    A context may be shared between threads; ``cancel`` is safe to call from
    any of them and wakes every caller waiting on the context.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        self.correlation_id = correlation_id
        self.deadline = time.monotonic() + timeout if timeout is not None else None
        self._cancelled = Event()
        self._callbacks: List[Callable[[], None]] = []
        self._lock = Lock()

    @classmethod
    def background(cls) -> "RequestContext":
        return cls()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run ``callback`` when the context is cancelled.

        Runs immediately if it already is. Returns a function that removes
        the callback again.
        """
        with self._lock:
            if not self._cancelled.is_set():
                self._callbacks.append(callback)
                return lambda: self._discard(callback)
        callback()
        return lambda: None

    def _discard(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    @property
    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set() or self.expired

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(self.deadline - time.monotonic(), 0.0)

    def cancellation_error(self, url: Optional[str] = None) -> RequestCancelledError:
        if self._cancelled.is_set():
            return RequestCancelledError("context canceled", url=url)
        return RequestCancelledError("context deadline exceeded", url=url)

    def raise_if_cancelled(self, url: Optional[str] = None) -> None:
        if self.cancelled:
            raise self.cancellation_error(url)
