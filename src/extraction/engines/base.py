from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar

from contracts.errors import ErrorKind

from ..contracts import ExtractionConfig, MediaKind
from ..signal import CancelSignal

ProgressFn = Callable[[float], None]


class EngineError(Exception):
    """
    Typed backend failure. The orchestrator turns it into an ExtractionFailure;
    `message`/`remedy` default to the ErrorKind template when omitted.
    """

    def __init__(
        self,
        *,
        kind: ErrorKind,
        code: str,
        message: str | None = None,
        remedy: str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or code)
        self.kind = kind
        self.code = code
        self.message = message
        self.remedy = remedy
        self.detail = detail


class ExtractionEngine(ABC):
    """
    Raw-text producer for one media kind.

    Engines must:
    - report local progress in [0, 1] through `report`, from the event loop thread
    - check `signal` between internal steps and stop with ExtractionCancelled
    - release every per-request resource (temp files, subprocesses, pdf pages)
      on all exit paths, including asyncio cancellation
    - perform NO cleanup of the recognized text (that is the normalizer's job)
    """

    media_kind: ClassVar[MediaKind]

    @abstractmethod
    def backend_id(self) -> str:
        raise NotImplementedError

    def backend_version(self) -> str | None:
        return None

    def is_available(self) -> bool:
        return True

    @abstractmethod
    async def extract_text(
        self,
        *,
        payload: bytes,
        config: ExtractionConfig,
        report: ProgressFn,
        signal: CancelSignal,
    ) -> str:
        raise NotImplementedError
