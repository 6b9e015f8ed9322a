from __future__ import annotations

from contracts.errors import ErrorKind

from ..contracts import ExtractionConfig, MediaKind
from ..signal import CancelSignal
from ..sniffing import decode_text, non_text_ratio, rich_document_signature
from .base import EngineError, ExtractionEngine, ProgressFn


class PlainTextEngine(ExtractionEngine):
    """
    Direct read of text uploads.

    Declared-text payloads are still checked for disguised binaries and
    word-processor formats before decoding.
    """

    media_kind = MediaKind.TEXT

    def backend_id(self) -> str:
        return "plain_text"

    async def extract_text(
        self,
        *,
        payload: bytes,
        config: ExtractionConfig,
        report: ProgressFn,
        signal: CancelSignal,
    ) -> str:
        report(0.0)

        signature = rich_document_signature(payload)
        if signature is not None:
            raise EngineError(
                kind=ErrorKind.UNSUPPORTED_FORMAT,
                code="EXTRACT_RICH_DOCUMENT",
                message="Word-processor documents (.doc, .docx, .odt, .rtf) cannot be read as plain text.",
                remedy="Open the document, copy the recipe text and paste it in manually, or save it as a PDF.",
                detail={"signature": signature},
            )

        ratio = non_text_ratio(payload[: config.binary_sample_bytes])
        if ratio > config.binary_ratio_threshold:
            raise EngineError(
                kind=ErrorKind.UNSUPPORTED_FORMAT,
                code="EXTRACT_BINARY_CONTENT",
                message="This file does not contain plain text.",
                remedy="Upload a photo, a PDF or a .txt file, or paste the recipe text manually.",
                detail={"non_text_ratio": round(ratio, 3)},
            )

        signal.raise_if_cancelled()
        text = decode_text(payload)
        report(0.9)

        if not text.strip():
            raise EngineError(kind=ErrorKind.EMPTY_RESULT, code="EXTRACT_TEXT_EMPTY")
        return text
