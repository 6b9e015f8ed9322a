from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from contracts.recipe import ConversionResult, MeasurementSystem, RecipeDraft
from extraction.contracts import ExtractedText, ExtractionConfig, ExtractionFailure, MediaKind, RawInput
from extraction.module import ExtractionOrchestrator
from extraction.progress import ProgressCallback, WarningCallback
from extraction.signal import CancelSignal
from recipe_convert import classify_and_convert, recovery_context_for
from text_normalize import NormalizedText, parse_draft, prepare_text

logger = logging.getLogger(__name__)

# Page furniture (headers, footers, blog chrome) is common in these sources.
TRIM_BOILERPLATE_KINDS = frozenset({MediaKind.PDF, MediaKind.IMAGE})


@dataclass(frozen=True, slots=True)
class IngestConfig:
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    target_system: MeasurementSystem = MeasurementSystem.METRIC

    def __post_init__(self) -> None:
        if not isinstance(self.extraction, ExtractionConfig):
            raise TypeError("extraction must be an ExtractionConfig")
        if not isinstance(self.target_system, MeasurementSystem):
            raise TypeError("target_system must be a MeasurementSystem")


@dataclass(frozen=True, slots=True)
class IngestResult:
    """
    Outcome of one end-to-end run. `extraction` is always present; the later
    stages are None when extraction failed.
    """

    extraction: ExtractedText | ExtractionFailure
    normalized: NormalizedText | None = None
    draft: RecipeDraft | None = None
    conversion: ConversionResult | None = None

    @property
    def ok(self) -> bool:
        return self.extraction.ok and self.conversion is not None and self.conversion.success

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"ok": self.ok, "extraction": self.extraction.to_dict()}
        payload["extraction"]["ok"] = self.extraction.ok
        payload["normalized"] = None if self.normalized is None else self.normalized.to_dict()
        payload["draft"] = None if self.draft is None else self.draft.to_dict()
        payload["conversion"] = None if self.conversion is None else self.conversion.to_dict()
        return payload


async def run_ingest(
    raw: RawInput,
    *,
    config: IngestConfig | None = None,
    on_progress: ProgressCallback | None = None,
    on_warning: WarningCallback | None = None,
    signal: CancelSignal | None = None,
    orchestrator: ExtractionOrchestrator | None = None,
) -> IngestResult:
    """
    Raw input -> extracted text -> RecipeDraft -> ConversionResult.

    Only extraction is asynchronous; the later stages run inline once the
    text is available. A cancelled or failed extraction ends the run.
    """

    config = config or IngestConfig()
    orchestrator = orchestrator or ExtractionOrchestrator(config=config.extraction)

    extracted = await orchestrator.extract(raw, on_progress=on_progress, on_warning=on_warning, signal=signal)
    if isinstance(extracted, ExtractionFailure):
        return IngestResult(extraction=extracted)
    if signal is not None and signal.cancelled:
        return IngestResult(extraction=extracted)

    normalized = prepare_text(extracted.text, trim_boilerplate=extracted.media_kind in TRIM_BOILERPLATE_KINDS)
    draft = parse_draft(normalized.text)
    conversion = classify_and_convert(
        draft,
        config.target_system,
        recovery_context=recovery_context_for(extracted.media_kind.value, extracted.text),
    )

    logger.info(
        "ingest finished",
        extra={
            "request_id": extracted.meta.get("request_id"),
            "media_kind": extracted.media_kind.value,
            "fixes": sorted(f.value for f in normalized.fixes),
            "success": conversion.success,
            "recipe_type": None if conversion.recipe_type is None else conversion.recipe_type.value,
            "recovered": conversion.recovered,
        },
    )
    return IngestResult(extraction=extracted, normalized=normalized, draft=draft, conversion=conversion)
