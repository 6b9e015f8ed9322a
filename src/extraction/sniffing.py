from __future__ import annotations

import unicodedata
from pathlib import PurePath

from contracts.errors import ErrorKind, error_message

from .contracts import ExtractionConfig, ExtractionFailure, MediaKind, RawInput

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".webp", ".gif", ".bmp", ".tif", ".tiff"})
PDF_EXTENSIONS = frozenset({".pdf"})
TEXT_EXTENSIONS = frozenset({".txt", ".text", ".md", ".markdown"})
RICH_DOCUMENT_EXTENSIONS = frozenset({".doc", ".docx", ".odt", ".rtf", ".pages"})

RICH_DOCUMENT_MIME_TYPES = frozenset(
    {
        "application/msword",
        "application/rtf",
        "text/rtf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/vnd.oasis.opendocument.text",
    }
)

_IMAGE_MAGIC: tuple[bytes, ...] = (
    b"\x89PNG\r\n\x1a\n",
    b"\xff\xd8\xff",  # JPEG
    b"GIF87a",
    b"GIF89a",
    b"BM",
    b"II*\x00",  # TIFF little-endian
    b"MM\x00*",  # TIFF big-endian
)
_PDF_MAGIC = b"%PDF-"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"  # legacy .doc
_RTF_MAGIC = b"{\\rtf"
_ZIP_MAGIC = b"PK\x03\x04"  # .docx / .odt / .pages

_TEXT_CONTROLS = frozenset("\t\n\r\f")
_TEXT_CONTROL_BYTES = frozenset(b"\t\n\r\f")


def _extension(filename: str | None) -> str:
    if not filename:
        return ""
    return PurePath(filename).suffix.lower()


def rich_document_signature(payload: bytes) -> str | None:
    """
    Return a short name for word-processor payloads, else None.
    """

    head = payload[:8]
    if head.startswith(_OLE_MAGIC):
        return "ole"
    if head.startswith(_RTF_MAGIC):
        return "rtf"
    if head.startswith(_ZIP_MAGIC):
        return "zip"
    return None


def non_text_ratio(sample: bytes) -> float:
    """
    Fraction of control/high bytes in `sample`.

    A sample that is valid UTF-8 (allowing a multi-byte character cut at the
    sample boundary) is judged on decoded control characters only, so
    non-Latin text is not mistaken for binary.
    """

    if not sample:
        return 0.0

    decoded: str | None
    try:
        decoded = sample.decode("utf-8")
    except UnicodeDecodeError as e:
        if e.reason == "unexpected end of data" and e.start >= len(sample) - 3:
            decoded = sample[: e.start].decode("utf-8")
        else:
            decoded = None

    if decoded is not None:
        if not decoded:
            return 0.0
        bad = sum(1 for ch in decoded if ch not in _TEXT_CONTROLS and unicodedata.category(ch) == "Cc")
        return bad / len(decoded)

    bad = sum(1 for b in sample if (b < 32 and b not in _TEXT_CONTROL_BYTES) or b >= 127)
    return bad / len(sample)


def decode_text(payload: bytes) -> str:
    if payload.startswith(b"\xef\xbb\xbf"):
        return payload[3:].decode("utf-8", errors="replace")
    for encoding in ("utf-8", "cp1252"):
        try:
            return payload.decode(encoding)
        except UnicodeDecodeError:
            continue
    return payload.decode("latin-1")


def _rich_document_failure(source: str) -> ExtractionFailure:
    return ExtractionFailure(
        kind=ErrorKind.UNSUPPORTED_FORMAT,
        code="EXTRACT_RICH_DOCUMENT",
        message="Word-processor documents (.doc, .docx, .odt, .rtf) cannot be read as plain text.",
        remedy="Open the document, copy the recipe text and paste it in manually, or save it as a PDF.",
        media_kind=MediaKind.TEXT,
        detail={"detected_by": source},
    )


def binary_content_failure(ratio: float) -> ExtractionFailure:
    message, remedy = error_message(ErrorKind.UNSUPPORTED_FORMAT)
    return ExtractionFailure(
        kind=ErrorKind.UNSUPPORTED_FORMAT,
        code="EXTRACT_BINARY_CONTENT",
        message="This file does not contain plain text. " + message,
        remedy=remedy,
        media_kind=MediaKind.TEXT,
        detail={"non_text_ratio": round(ratio, 3)},
    )


def _from_mime(mime_type: str | None) -> tuple[MediaKind | None, ExtractionFailure | None]:
    if not mime_type:
        return None, None
    mime = mime_type.split(";", 1)[0].strip().lower()
    if mime in RICH_DOCUMENT_MIME_TYPES:
        return None, _rich_document_failure("mime_type")
    if mime.startswith("image/"):
        return MediaKind.IMAGE, None
    if mime == "application/pdf":
        return MediaKind.PDF, None
    if mime.startswith("text/"):
        return MediaKind.TEXT, None
    return None, None


def _from_extension(filename: str | None) -> tuple[MediaKind | None, ExtractionFailure | None]:
    ext = _extension(filename)
    if ext in RICH_DOCUMENT_EXTENSIONS:
        return None, _rich_document_failure("extension")
    if ext in IMAGE_EXTENSIONS:
        return MediaKind.IMAGE, None
    if ext in PDF_EXTENSIONS:
        return MediaKind.PDF, None
    if ext in TEXT_EXTENSIONS:
        return MediaKind.TEXT, None
    return None, None


def _from_content(payload: bytes, *, config: ExtractionConfig) -> tuple[MediaKind | None, ExtractionFailure | None]:
    if payload.startswith(_PDF_MAGIC):
        return MediaKind.PDF, None
    if any(payload.startswith(m) for m in _IMAGE_MAGIC):
        return MediaKind.IMAGE, None
    if payload[:4] == b"RIFF" and payload[8:12] == b"WEBP":
        return MediaKind.IMAGE, None
    if rich_document_signature(payload) is not None:
        return None, _rich_document_failure("content")

    ratio = non_text_ratio(payload[: config.binary_sample_bytes])
    if ratio > config.binary_ratio_threshold:
        return None, binary_content_failure(ratio)
    return MediaKind.TEXT, None


def sniff_media_kind(
    raw: RawInput, *, config: ExtractionConfig
) -> tuple[MediaKind | None, ExtractionFailure | None]:
    """
    Decide which backend handles `raw`.

    Precedence: declared kind, then MIME type, then filename extension, then
    content heuristics (magic bytes, then the non-text ratio check).
    """

    if raw.declared_kind is not None:
        return raw.declared_kind, None

    for kind, failure in (_from_mime(raw.mime_type), _from_extension(raw.filename)):
        if failure is not None or kind is not None:
            return kind, failure

    return _from_content(raw.payload, config=config)
