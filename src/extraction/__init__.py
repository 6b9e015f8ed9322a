"""
Extraction layer (raw upload -> plain text).

- Exactly one backend per request, chosen from an explicit registry keyed by
  media kind: image (tesseract CLI), PDF (pypdfium2), plain text.
- Size limits are checked before any backend is touched.
- Every backend runs under a timeout race and a cooperative CancelSignal;
  backend exceptions never escape `ExtractionOrchestrator.extract`.
- No environment variable reads; callers pass an ExtractionConfig.
"""

from .contracts import (
    ExtractedText,
    ExtractionConfig,
    ExtractionFailure,
    ExtractionResult,
    ExtractionTask,
    ExtractionWarning,
    MediaKind,
    RawInput,
)
from .module import ExtractionOrchestrator, default_engines, run_extraction
from .signal import CancelSignal, ExtractionCancelled

__all__ = [
    "CancelSignal",
    "ExtractedText",
    "ExtractionCancelled",
    "ExtractionConfig",
    "ExtractionFailure",
    "ExtractionOrchestrator",
    "ExtractionResult",
    "ExtractionTask",
    "ExtractionWarning",
    "MediaKind",
    "RawInput",
    "default_engines",
    "run_extraction",
]
