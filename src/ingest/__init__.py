"""
End-to-end runner (raw upload -> ConversionResult).

- Chains extraction, normalization/structure detection and
  classification/conversion for a single request.
- A failed or cancelled extraction stops the run; later stages are skipped.
- Boilerplate trimming is applied to PDF and image text only.
"""

from .artifacts import serialize_ingest_result, write_ingest_json
from .module import IngestConfig, IngestResult, run_ingest

__all__ = [
    "IngestConfig",
    "IngestResult",
    "run_ingest",
    "serialize_ingest_result",
    "write_ingest_json",
]
