from __future__ import annotations

import asyncio
import mimetypes
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Union

from contracts.errors import ErrorKind

from .signal import CANCELLED_REASON, CancelSignal

MB = 1024 * 1024


class MediaKind(str, Enum):
    IMAGE = "image"
    PDF = "pdf"
    TEXT = "text"


@dataclass(frozen=True, slots=True)
class RawInput:
    """
    Caller-owned raw upload. Consumed once per pipeline run; never persisted.
    """

    payload: bytes
    declared_kind: MediaKind | None = None
    filename: str | None = None
    mime_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.payload)

    @staticmethod
    def from_path(path: Path, *, declared_kind: MediaKind | None = None) -> "RawInput":
        mime_type, _ = mimetypes.guess_type(path.name)
        return RawInput(
            payload=path.read_bytes(),
            declared_kind=declared_kind,
            filename=path.name,
            mime_type=mime_type,
        )

    @staticmethod
    def from_text(text: str, *, filename: str | None = None) -> "RawInput":
        return RawInput(payload=text.encode("utf-8"), declared_kind=MediaKind.TEXT, filename=filename)


@dataclass(frozen=True, slots=True)
class ExtractedText:
    text: str
    media_kind: MediaKind
    backend: str
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ExtractionFailure:
    kind: ErrorKind
    code: str
    message: str
    remedy: str | None = None
    media_kind: MediaKind | None = None
    detail: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ExtractionWarning:
    """
    Soft signal surfaced while a request is still running (never a failure).
    """

    code: str
    message: str
    elapsed_s: float


@dataclass(eq=False)
class ExtractionTask:
    """
    Cancellable handle for an extraction running in the background.

    `cancel()` resolves only after the request has wound down; after that no
    progress, completion or error callback of the request fires.
    """

    request_id: str
    _task: asyncio.Task = field(repr=False)
    _signal: CancelSignal = field(repr=False)

    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> ExtractedText | ExtractionFailure:
        return await asyncio.shield(self._task)

    async def cancel(self) -> ExtractedText | ExtractionFailure:
        self._signal.cancel(CANCELLED_REASON)
        return await asyncio.shield(self._task)


ExtractionResult = Union[ExtractedText, ExtractionTask, ExtractionFailure]


@dataclass(frozen=True, slots=True)
class ExtractionConfig:
    """
    Extraction layer configuration.

    Values are passed explicitly by the caller (CLI or host application);
    nothing in this package reads environment variables.
    """

    max_image_bytes: int = 15 * MB
    max_pdf_bytes: int = 20 * MB
    max_text_bytes: int = 10 * MB

    image_timeout_s: float = 240.0
    pdf_timeout_min_s: float = 180.0  # applies up to pdf_chunk_threshold_bytes
    pdf_timeout_max_s: float = 600.0  # reached at max_pdf_bytes
    text_timeout_s: float = 10.0

    progress_interval_s: float = 0.5  # at most ~2 caller-visible updates per second
    stall_warning_s: float = 15.0
    long_running_warning_s: float = 30.0
    stall_check_interval_s: float = 1.0

    pdf_chunk_threshold_bytes: int = 5 * MB
    pdf_batch_pages: int = 5
    pdf_batch_delay_s: float = 0.1
    pdf_max_pages: int = 50
    # Scanned PDFs: render pages and OCR them instead of failing with empty-result.
    pdf_ocr_fallback: bool = False
    pdf_render_dpi: int = 200

    ocr_language: str = "eng"
    ocr_psm: int | None = None
    ocr_poll_interval_s: float = 0.25
    ocr_max_side_px: int = 4000
    min_ocr_chars: int = 10

    binary_sample_bytes: int = 1000
    binary_ratio_threshold: float = 0.3

    def __post_init__(self) -> None:
        for name in (
            "max_image_bytes",
            "max_pdf_bytes",
            "max_text_bytes",
            "pdf_batch_pages",
            "pdf_max_pages",
            "pdf_render_dpi",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be a positive integer")
        for name in ("image_timeout_s", "pdf_timeout_min_s", "text_timeout_s", "ocr_poll_interval_s"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.pdf_timeout_max_s < self.pdf_timeout_min_s:
            raise ValueError("pdf_timeout_max_s must be >= pdf_timeout_min_s")
        if self.progress_interval_s < 0 or self.pdf_batch_delay_s < 0:
            raise ValueError("intervals must be >= 0")
        if not (0.0 < self.binary_ratio_threshold <= 1.0):
            raise ValueError("binary_ratio_threshold must be within (0, 1]")

    def max_bytes_for(self, media_kind: MediaKind) -> int:
        if media_kind is MediaKind.IMAGE:
            return self.max_image_bytes
        if media_kind is MediaKind.PDF:
            return self.max_pdf_bytes
        return self.max_text_bytes

    def timeout_for(self, media_kind: MediaKind, size_bytes: int) -> float:
        if media_kind is MediaKind.IMAGE:
            return self.image_timeout_s
        if media_kind is MediaKind.TEXT:
            return self.text_timeout_s

        # PDFs: flat minimum for small files, then linear up to the maximum.
        if size_bytes <= self.pdf_chunk_threshold_bytes:
            return self.pdf_timeout_min_s
        span = max(self.max_pdf_bytes - self.pdf_chunk_threshold_bytes, 1)
        frac = min(1.0, (size_bytes - self.pdf_chunk_threshold_bytes) / span)
        return self.pdf_timeout_min_s + frac * (self.pdf_timeout_max_s - self.pdf_timeout_min_s)
