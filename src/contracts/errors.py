from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """
    Failure taxonomy shared by every stage.

    Each kind maps to exactly one user-facing message template (see
    `error_message`), optionally refined by the media kind of the input.
    """

    OVERSIZED_INPUT = "oversized-input"
    UNSUPPORTED_FORMAT = "unsupported-format"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    EMPTY_RESULT = "empty-result"
    PARSING_ERROR = "parsing-error"
    CONVERSION_ERROR = "conversion-error"
    UNKNOWN = "unknown"


# Recoverable kinds get exactly one pass through the recovery stage.
RECOVERABLE_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.PARSING_ERROR, ErrorKind.CONVERSION_ERROR, ErrorKind.UNSUPPORTED_FORMAT}
)

# Terminal for the request; a caller may still start a fresh request after a timeout.
TERMINAL_KINDS: frozenset[ErrorKind] = frozenset(
    {ErrorKind.CANCELLED, ErrorKind.OVERSIZED_INPUT, ErrorKind.TIMEOUT}
)


_MESSAGES: dict[ErrorKind, tuple[str, str | None]] = {
    ErrorKind.OVERSIZED_INPUT: (
        "This file is too large to process.",
        "Use a smaller file or paste the recipe text directly.",
    ),
    ErrorKind.UNSUPPORTED_FORMAT: (
        "This file type cannot be read as a recipe.",
        "Upload a photo, a PDF or a plain-text file, or paste the recipe text manually.",
    ),
    ErrorKind.TIMEOUT: (
        "Processing took too long and was stopped.",
        "Try again with a smaller or simpler file, or paste the recipe text directly.",
    ),
    ErrorKind.CANCELLED: ("Processing was cancelled.", None),
    ErrorKind.EMPTY_RESULT: (
        "No readable text was found.",
        "Try a clearer source or paste the recipe text manually.",
    ),
    ErrorKind.PARSING_ERROR: (
        "The recipe text could not be organised into ingredients and instructions.",
        "Check that the text contains an ingredient list and method, or enter it manually.",
    ),
    ErrorKind.CONVERSION_ERROR: (
        "The recipe measurements could not be converted.",
        "Review the ingredient quantities and units, then try again.",
    ),
    ErrorKind.UNKNOWN: (
        "Something went wrong while processing the recipe.",
        "Try again, or paste the recipe text manually.",
    ),
}

_MEDIA_MESSAGES: dict[tuple[ErrorKind, str], tuple[str, str | None]] = {
    (ErrorKind.OVERSIZED_INPUT, "image"): (
        "This image is larger than 15MB.",
        "Resize or compress the photo, or crop it to just the recipe.",
    ),
    (ErrorKind.OVERSIZED_INPUT, "pdf"): (
        "This PDF is larger than 20MB.",
        "Use a smaller PDF or extract just the pages with the recipe.",
    ),
    (ErrorKind.OVERSIZED_INPUT, "text"): (
        "This text file is larger than 10MB.",
        "Paste only the recipe itself rather than the whole document.",
    ),
    (ErrorKind.EMPTY_RESULT, "pdf"): (
        "No text could be extracted from this PDF. It is probably a scanned or image-only document.",
        "Take a photo or screenshot of the recipe and upload it as an image so it can be read with OCR.",
    ),
    (ErrorKind.EMPTY_RESULT, "image"): (
        "OCR could not find enough readable text in this image.",
        "Upload a clearer, well-lit photo taken straight on, or enter the text manually.",
    ),
    (ErrorKind.TIMEOUT, "image"): (
        "Reading the text from this image took too long.",
        "Crop the photo to just the recipe or use a smaller image.",
    ),
    (ErrorKind.TIMEOUT, "pdf"): (
        "PDF processing timed out.",
        "Use a smaller or simpler PDF, or paste the recipe text directly.",
    ),
}


def error_message(kind: ErrorKind, media_kind: str | None = None) -> tuple[str, str | None]:
    """
    Return `(message, remedy)` for a failure kind.

    `media_kind` is the plain value ("image", "pdf", "text") so callers outside
    the extraction layer do not need its enum.
    """

    if media_kind is not None:
        specific = _MEDIA_MESSAGES.get((kind, media_kind))
        if specific is not None:
            return specific
    return _MESSAGES[kind]
