from __future__ import annotations

import asyncio
import threading
from typing import Callable

CANCELLED_REASON = "cancelled"
TIMEOUT_REASON = "timeout"


class ExtractionCancelled(Exception):
    """
    Raised inside a backend when it observes a tripped CancelSignal.
    """

    def __init__(self, reason: str = CANCELLED_REASON) -> None:
        super().__init__(reason)
        self.reason = reason


class CancelSignal:
    """
    Cooperative, one-shot cancellation flag shared by a request's stages.

    Safe to check from worker threads (PDF page loops) and from the event loop.
    The first `cancel()` wins; its reason distinguishes caller cancellation
    from the orchestrator's timeout.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._listeners: list[Callable[[], None]] = []
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = CANCELLED_REASON) -> bool:
        with self._lock:
            if self._event.is_set():
                return False
            self.reason = reason
            self._event.set()
            listeners = list(self._listeners)
            self._listeners.clear()
        for listener in listeners:
            listener()
        return True

    def add_listener(self, listener: Callable[[], None]) -> Callable[[], None]:
        """
        Register `listener` to run once on cancellation. Returns a remover.
        """

        with self._lock:
            fire_now = self._event.is_set()
            if not fire_now:
                self._listeners.append(listener)
        if fire_now:
            listener()

        def _remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _remove

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ExtractionCancelled(self.reason or CANCELLED_REASON)

    async def wait(self) -> str:
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[None] = loop.create_future()

        def _resolve() -> None:
            if not fut.done():
                fut.set_result(None)

        def _wake() -> None:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve)

        remove = self.add_listener(_wake)
        try:
            await fut
        finally:
            remove()
        return self.reason or CANCELLED_REASON
