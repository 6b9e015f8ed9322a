from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Callable, Mapping

from contracts.errors import ErrorKind, error_message

from .contracts import (
    ExtractedText,
    ExtractionConfig,
    ExtractionFailure,
    ExtractionTask,
    MediaKind,
    RawInput,
)
from .engines import ExtractionEngine, EngineError, PlainTextEngine, Pypdfium2Engine, TesseractCliEngine
from .progress import ProgressCallback, ProgressReporter, StallWatch, WarningCallback
from .scope import CancellationRegistry, RequestScope
from .signal import CANCELLED_REASON, TIMEOUT_REASON, CancelSignal, ExtractionCancelled
from .sniffing import sniff_media_kind

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[ExtractedText], None]
ErrorCallback = Callable[[ExtractionFailure], None]


class _RaceTimeout(Exception):
    pass


def default_engines() -> dict[MediaKind, ExtractionEngine]:
    return {
        MediaKind.IMAGE: TesseractCliEngine(),
        MediaKind.PDF: Pypdfium2Engine(),
        MediaKind.TEXT: PlainTextEngine(),
    }


def _new_request_id() -> str:
    return uuid.uuid4().hex[:12]


def _failure(
    kind: ErrorKind,
    code: str,
    *,
    media_kind: MediaKind | None = None,
    message: str | None = None,
    remedy: str | None = None,
    detail: dict | None = None,
) -> ExtractionFailure:
    default_message, default_remedy = error_message(kind, None if media_kind is None else media_kind.value)
    return ExtractionFailure(
        kind=kind,
        code=code,
        message=message or default_message,
        remedy=remedy if remedy is not None else default_remedy,
        media_kind=media_kind,
        detail=detail,
    )


def _from_engine_error(e: EngineError, media_kind: MediaKind) -> ExtractionFailure:
    return _failure(
        e.kind,
        e.code,
        media_kind=media_kind,
        message=e.message,
        remedy=e.remedy,
        detail=e.detail,
    )


class ExtractionOrchestrator:
    """
    Dispatches a RawInput to one extraction backend and wraps the outcome in a
    uniform result: ExtractedText or a typed ExtractionFailure. No backend
    exception crosses this boundary.

    The orchestrator owns the CancellationRegistry, the only state shared by
    concurrent requests.
    """

    def __init__(
        self,
        *,
        config: ExtractionConfig | None = None,
        engines: Mapping[MediaKind, ExtractionEngine] | None = None,
    ) -> None:
        self._config = config or ExtractionConfig()
        self._engines: dict[MediaKind, ExtractionEngine] = dict(engines) if engines is not None else default_engines()
        self._registry = CancellationRegistry()

    @property
    def config(self) -> ExtractionConfig:
        return self._config

    def active_requests(self) -> list[str]:
        return self._registry.active_ids()

    def cancel(self, request_id: str) -> bool:
        return self._registry.cancel(request_id, CANCELLED_REASON)

    def _select_engine(self, media_kind: MediaKind) -> ExtractionEngine | ExtractionFailure:
        engine = self._engines.get(media_kind)
        if engine is None:
            return _failure(
                ErrorKind.UNSUPPORTED_FORMAT,
                "EXTRACT_NO_BACKEND",
                media_kind=media_kind,
                detail={"media_kind": media_kind.value},
            )
        if not engine.is_available():
            return _failure(
                ErrorKind.UNKNOWN,
                "EXTRACT_BACKEND_NOT_INSTALLED",
                media_kind=media_kind,
                message=f"The {media_kind.value} extraction backend is not installed.",
                detail={"backend": engine.backend_id()},
            )
        return engine

    async def extract(
        self,
        raw: RawInput,
        *,
        on_progress: ProgressCallback | None = None,
        on_warning: WarningCallback | None = None,
        signal: CancelSignal | None = None,
        request_id: str | None = None,
    ) -> ExtractedText | ExtractionFailure:
        request_id = request_id or _new_request_id()
        signal = signal or CancelSignal()

        if signal.cancelled:
            return _failure(ErrorKind.CANCELLED, "EXTRACT_CANCELLED")

        media_kind, rejection = sniff_media_kind(raw, config=self._config)
        if rejection is not None:
            logger.info(
                "extraction rejected",
                extra={"request_id": request_id, "code": rejection.code, "file_name": raw.filename},
            )
            return rejection
        if media_kind is None:
            return _failure(ErrorKind.UNSUPPORTED_FORMAT, "EXTRACT_UNKNOWN_MEDIA_KIND")

        # Size limits are enforced before any backend is looked up or invoked.
        limit = self._config.max_bytes_for(media_kind)
        if raw.size > limit:
            logger.info(
                "extraction rejected: oversized input",
                extra={"request_id": request_id, "media_kind": media_kind.value, "size_bytes": raw.size},
            )
            return _failure(
                ErrorKind.OVERSIZED_INPUT,
                "EXTRACT_INPUT_TOO_LARGE",
                media_kind=media_kind,
                detail={"size_bytes": raw.size, "max_bytes": limit},
            )

        selected = self._select_engine(media_kind)
        if isinstance(selected, ExtractionFailure):
            return selected
        engine = selected

        scope = RequestScope(request_id=request_id, signal=signal, registry=self._registry)
        try:
            scope.register()
        except ValueError as e:
            return _failure(
                ErrorKind.UNKNOWN,
                "EXTRACT_REQUEST_ID_IN_USE",
                media_kind=media_kind,
                message=str(e),
                remedy="Wait for the running request to finish or cancel it first.",
            )

        timeout_s = self._config.timeout_for(media_kind, raw.size)
        started = time.monotonic()
        logger.info(
            "extraction started",
            extra={
                "request_id": request_id,
                "media_kind": media_kind.value,
                "backend": engine.backend_id(),
                "size_bytes": raw.size,
                "timeout_s": round(timeout_s, 1),
            },
        )

        async with scope:
            reporter = ProgressReporter(
                scope=scope,
                callback=on_progress,
                min_interval_s=self._config.progress_interval_s,
            )
            if media_kind is MediaKind.IMAGE:
                StallWatch(
                    scope=scope,
                    reporter=reporter,
                    callback=on_warning,
                    stall_after_s=self._config.stall_warning_s,
                    long_running_after_s=self._config.long_running_warning_s,
                    check_interval_s=self._config.stall_check_interval_s,
                ).start()

            result = await self._run_engine(
                engine=engine,
                raw=raw,
                media_kind=media_kind,
                reporter=reporter,
                signal=signal,
                timeout_s=timeout_s,
            )

            if isinstance(result, ExtractedText):
                reporter.almost_done()
                result = ExtractedText(
                    text=result.text,
                    media_kind=media_kind,
                    backend=engine.backend_id(),
                    meta={
                        "request_id": request_id,
                        "backend_version": engine.backend_version(),
                        "elapsed_s": round(time.monotonic() - started, 3),
                        "size_bytes": raw.size,
                    },
                )
                reporter.complete()

        extra = {
            "request_id": request_id,
            "media_kind": media_kind.value,
            "backend": engine.backend_id(),
            "elapsed_s": round(time.monotonic() - started, 3),
        }
        if isinstance(result, ExtractedText):
            logger.info("extraction finished", extra={**extra, "chars": len(result.text)})
        else:
            logger.info("extraction failed", extra={**extra, "kind": result.kind.value, "code": result.code})
        return result

    async def _run_engine(
        self,
        *,
        engine: ExtractionEngine,
        raw: RawInput,
        media_kind: MediaKind,
        reporter: ProgressReporter,
        signal: CancelSignal,
        timeout_s: float,
    ) -> ExtractedText | ExtractionFailure:
        try:
            text = await self._race(
                engine=engine,
                payload=raw.payload,
                reporter=reporter,
                signal=signal,
                timeout_s=timeout_s,
            )
        except _RaceTimeout:
            return _failure(
                ErrorKind.TIMEOUT,
                "EXTRACT_TIMEOUT",
                media_kind=media_kind,
                detail={"timeout_s": round(timeout_s, 1)},
            )
        except ExtractionCancelled as e:
            if e.reason == TIMEOUT_REASON:
                return _failure(ErrorKind.TIMEOUT, "EXTRACT_TIMEOUT", media_kind=media_kind)
            return _failure(ErrorKind.CANCELLED, "EXTRACT_CANCELLED", media_kind=media_kind)
        except EngineError as e:
            if signal.cancelled and signal.reason == CANCELLED_REASON:
                return _failure(ErrorKind.CANCELLED, "EXTRACT_CANCELLED", media_kind=media_kind)
            return _from_engine_error(e, media_kind)
        except Exception as e:
            logger.exception("extraction backend raised", extra={"backend": engine.backend_id()})
            return _failure(
                ErrorKind.UNKNOWN,
                "EXTRACT_BACKEND_ERROR",
                media_kind=media_kind,
                detail={"error": repr(e)},
            )

        if signal.cancelled:
            return _failure(ErrorKind.CANCELLED, "EXTRACT_CANCELLED", media_kind=media_kind)
        return ExtractedText(text=text, media_kind=media_kind, backend=engine.backend_id())

    async def _race(
        self,
        *,
        engine: ExtractionEngine,
        payload: bytes,
        reporter: ProgressReporter,
        signal: CancelSignal,
        timeout_s: float,
    ) -> str:
        """
        Backend vs. timer vs. cancel signal; first to settle wins.
        """

        engine_task = asyncio.ensure_future(
            engine.extract_text(payload=payload, config=self._config, report=reporter.report, signal=signal)
        )
        cancel_task = asyncio.ensure_future(signal.wait())
        try:
            done, _ = await asyncio.wait(
                {engine_task, cancel_task},
                timeout=timeout_s,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if engine_task in done:
                return engine_task.result()
            if cancel_task in done:
                raise ExtractionCancelled(signal.reason or CANCELLED_REASON)
            signal.cancel(TIMEOUT_REASON)
            raise _RaceTimeout()
        finally:
            for task in (engine_task, cancel_task):
                if not task.done():
                    task.cancel()
            await asyncio.gather(engine_task, cancel_task, return_exceptions=True)

    def start(
        self,
        raw: RawInput,
        *,
        on_progress: ProgressCallback | None = None,
        on_warning: WarningCallback | None = None,
        on_complete: CompletionCallback | None = None,
        on_error: ErrorCallback | None = None,
        request_id: str | None = None,
    ) -> ExtractionTask:
        """
        Start an extraction in the background and return its cancellable handle.

        Must be called from a running event loop. `on_complete`/`on_error` never
        fire for a request that was cancelled by the caller.
        """

        request_id = request_id or _new_request_id()
        signal = CancelSignal()

        async def _run() -> ExtractedText | ExtractionFailure:
            result = await self.extract(
                raw,
                on_progress=on_progress,
                on_warning=on_warning,
                signal=signal,
                request_id=request_id,
            )
            if signal.cancelled and signal.reason == CANCELLED_REASON:
                return result
            if isinstance(result, ExtractedText):
                if on_complete is not None:
                    on_complete(result)
            elif on_error is not None:
                on_error(result)
            return result

        task = asyncio.get_running_loop().create_task(_run())
        return ExtractionTask(request_id=request_id, _task=task, _signal=signal)


async def run_extraction(
    raw: RawInput,
    *,
    config: ExtractionConfig | None = None,
    on_progress: ProgressCallback | None = None,
    on_warning: WarningCallback | None = None,
    signal: CancelSignal | None = None,
) -> ExtractedText | ExtractionFailure:
    """
    One-off extraction with the default backend registry.
    """

    orchestrator = ExtractionOrchestrator(config=config)
    return await orchestrator.extract(raw, on_progress=on_progress, on_warning=on_warning, signal=signal)
