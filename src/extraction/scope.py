from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine

from .signal import CANCELLED_REASON, CancelSignal

logger = logging.getLogger(__name__)


class CancellationRegistry:
    """
    One active RequestScope per request id.

    This is the only mutable state shared between independent requests; it is
    owned by the orchestrator and entries are removed when a scope closes.
    """

    def __init__(self) -> None:
        self._scopes: dict[str, RequestScope] = {}

    def register(self, scope: "RequestScope") -> None:
        if scope.request_id in self._scopes:
            raise ValueError(f"request_id already active: {scope.request_id!r}")
        self._scopes[scope.request_id] = scope

    def unregister(self, scope: "RequestScope") -> None:
        if self._scopes.get(scope.request_id) is scope:
            del self._scopes[scope.request_id]

    def cancel(self, request_id: str, reason: str = CANCELLED_REASON) -> bool:
        scope = self._scopes.get(request_id)
        if scope is None:
            return False
        return scope.signal.cancel(reason)

    def active_ids(self) -> list[str]:
        return sorted(self._scopes)

    def __len__(self) -> int:
        return len(self._scopes)


class RequestScope:
    """
    Lifetime object for one extraction request.

    Every timer and helper task of the request is created through the scope
    and torn down by `aclose()`, which runs on every exit path (success, error,
    cancellation, timeout).
    """

    def __init__(
        self,
        *,
        request_id: str,
        signal: CancelSignal,
        registry: CancellationRegistry | None = None,
    ) -> None:
        self.request_id = request_id
        self.signal = signal
        self._registry = registry
        self._timers: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False
        self._registered = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def active(self) -> bool:
        """False once the scope is closed or the request has been cancelled."""
        return not self._closed and not self.signal.cancelled

    def pending_count(self) -> int:
        return len(self._timers) + len(self._tasks)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> asyncio.TimerHandle | None:
        if self._closed:
            return None
        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle

        def _fire() -> None:
            self._timers.discard(handle)
            callback()

        handle = loop.call_later(delay_s, _fire)
        self._timers.add(handle)
        return handle

    def cancel_timer(self, handle: asyncio.TimerHandle | None) -> None:
        if handle is None:
            return
        handle.cancel()
        self._timers.discard(handle)

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any] | None:
        if self._closed:
            coro.close()
            return None
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def register(self) -> None:
        """
        Claim the request id in the registry. Raises ValueError when another
        active scope holds it. Entering the scope registers it if this has not
        been called yet.
        """

        if self._registry is None or self._registered:
            return
        self._registry.register(self)
        self._registered = True

    async def __aenter__(self) -> "RequestScope":
        self.register()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True

        for handle in list(self._timers):
            handle.cancel()
        self._timers.clear()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

        if self._registry is not None:
            self._registry.unregister(self)
        logger.debug("request scope closed", extra={"request_id": self.request_id})
