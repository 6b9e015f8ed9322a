from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from .contracts import ExtractedText, ExtractionFailure


def extraction_payload(result: ExtractedText | ExtractionFailure) -> dict[str, Any]:
    payload: dict[str, Any] = result.to_dict()
    payload["ok"] = result.ok
    return payload


def serialize_extraction_result(result: ExtractedText | ExtractionFailure) -> str:
    """
    Stable JSON serialization for extraction artifacts.
    """

    return json.dumps(extraction_payload(result), ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def write_extraction_json(*, result: ExtractedText | ExtractionFailure, out_file: Path) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(serialize_extraction_result(result), encoding="utf-8")
