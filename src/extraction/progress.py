from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from .contracts import ExtractionWarning
from .scope import RequestScope

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
WarningCallback = Callable[[ExtractionWarning], None]

# Caller-visible scale. Running backends never pass RUNNING_CEILING; the tail
# is reserved for "almost done" so the UI does not sit at 100 before the
# result is confirmed.
RUNNING_CEILING = 90
ALMOST_DONE = 95
COMPLETE = 100


def to_visible(local_progress: float) -> int:
    """
    Map backend-local progress (0..1) onto the caller's 0..RUNNING_CEILING range.
    """

    clamped = max(0.0, min(1.0, local_progress))
    return min(RUNNING_CEILING, int(clamped * 100))


class ProgressReporter:
    """
    Coalesces raw backend progress into at most one caller update per
    `min_interval_s`.

    - values never decrease and are never repeated
    - a throttled value is delivered later by a flush timer owned by the scope
    - nothing is delivered once the scope is closed or the request cancelled
    """

    def __init__(
        self,
        *,
        scope: RequestScope,
        callback: ProgressCallback | None,
        min_interval_s: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._scope = scope
        self._callback = callback
        self._interval = min_interval_s
        self._clock = clock

        self.current = -1  # highest accepted visible value
        self.last_advanced_at = clock()
        self.emitted: list[int] = []

        self._last_emit_at: float | None = None
        self._pending: int | None = None
        self._flush_handle: asyncio.TimerHandle | None = None

    def report(self, local_progress: float) -> None:
        self._offer(to_visible(local_progress), force=False)

    def almost_done(self) -> None:
        self._offer(ALMOST_DONE, force=True)

    def complete(self) -> None:
        self._offer(COMPLETE, force=True)

    def _offer(self, value: int, *, force: bool) -> None:
        if not self._scope.active:
            return
        if value <= self.current:
            return

        now = self._clock()
        self.current = value
        self.last_advanced_at = now

        due = self._last_emit_at is None or (now - self._last_emit_at) >= self._interval
        if force or due:
            self._emit(value, now)
            return

        self._pending = value
        if self._flush_handle is None:
            remaining = self._interval - (now - (self._last_emit_at or now))
            self._flush_handle = self._scope.call_later(max(0.0, remaining), self._flush)

    def _flush(self) -> None:
        self._flush_handle = None
        if self._pending is None or not self._scope.active:
            return
        self._emit(self._pending, self._clock())

    def _emit(self, value: int, now: float) -> None:
        self._pending = None
        if self._flush_handle is not None:
            self._scope.cancel_timer(self._flush_handle)
            self._flush_handle = None
        self._last_emit_at = now
        self.emitted.append(value)
        if value % 25 == 0 or value >= ALMOST_DONE:
            logger.debug(
                "extraction progress",
                extra={"request_id": self._scope.request_id, "progress": value},
            )
        if self._callback is not None:
            self._callback(value)


class StallWatch:
    """
    Soft warnings for long OCR runs.

    - stalled: visible progress has not advanced for `stall_after_s`
    - long running: the request has been processing for `long_running_after_s`
    Each warning fires at most once per request.
    """

    STALLED = "EXTRACT_PROGRESS_STALLED"
    LONG_RUNNING = "EXTRACT_LONG_RUNNING"

    def __init__(
        self,
        *,
        scope: RequestScope,
        reporter: ProgressReporter,
        callback: WarningCallback | None,
        stall_after_s: float,
        long_running_after_s: float,
        check_interval_s: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._scope = scope
        self._reporter = reporter
        self._callback = callback
        self._stall_after = stall_after_s
        self._long_after = long_running_after_s
        self._interval = check_interval_s
        self._clock = clock
        self._started_at = clock()
        self.sent: list[str] = []

    def start(self) -> None:
        self._started_at = self._clock()
        self._scope.spawn(self._run())

    async def _run(self) -> None:
        while self._scope.active and len(self.sent) < 2:
            await asyncio.sleep(self._interval)
            self.check()

    def check(self) -> list[ExtractionWarning]:
        if not self._scope.active:
            return []

        now = self._clock()
        warnings: list[ExtractionWarning] = []
        elapsed = now - self._started_at

        if self.STALLED not in self.sent and now - self._reporter.last_advanced_at >= self._stall_after:
            warnings.append(
                ExtractionWarning(
                    code=self.STALLED,
                    message="Still reading the image; large or complex photos can take over a minute.",
                    elapsed_s=round(elapsed, 1),
                )
            )
        if self.LONG_RUNNING not in self.sent and elapsed >= self._long_after:
            warnings.append(
                ExtractionWarning(
                    code=self.LONG_RUNNING,
                    message="This is taking longer than usual. You can keep waiting or cancel and try a cropped photo.",
                    elapsed_s=round(elapsed, 1),
                )
            )

        for w in warnings:
            self.sent.append(w.code)
            logger.warning(
                "extraction warning",
                extra={"request_id": self._scope.request_id, "code": w.code, "elapsed_s": w.elapsed_s},
            )
            if self._callback is not None:
                self._callback(w)
        return warnings
