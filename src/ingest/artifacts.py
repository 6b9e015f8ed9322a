from __future__ import annotations

import json
from pathlib import Path

from .module import IngestResult


def serialize_ingest_result(result: IngestResult) -> str:
    """
    Stable JSON serialization for ingest artifacts.
    """

    return json.dumps(result.to_dict(), ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def write_ingest_json(*, result: IngestResult, out_file: Path) -> None:
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(serialize_ingest_result(result), encoding="utf-8")
