from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from contracts.recipe import MeasurementSystem
from extraction.cli import add_extraction_arguments, extraction_config_from_args
from extraction.contracts import MediaKind, RawInput
from observability.logging_config import configure_logging

from .artifacts import write_ingest_json
from .module import IngestConfig, run_ingest


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="recipe-ingest",
        description="Turn a recipe photo, PDF or text file into a structured, converted recipe JSON.",
    )
    p.add_argument("--input", required=True, type=Path, help="Input file (image, PDF or text).")
    p.add_argument("--out", required=True, type=Path, help="Output JSON artifact file path.")
    p.add_argument(
        "--target",
        choices=[m.value for m in MeasurementSystem],
        default=MeasurementSystem.METRIC.value,
        help="Measurement system for converted quantities (default: metric).",
    )
    add_extraction_arguments(p)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if not args.input.is_file():
        parser.error(f"input file not found: {args.input}")
    configure_logging(args.log_level)

    config = IngestConfig(
        extraction=extraction_config_from_args(args),
        target_system=MeasurementSystem(args.target),
    )
    declared = MediaKind(args.kind) if args.kind else None
    raw = RawInput.from_path(args.input, declared_kind=declared)

    result = asyncio.run(run_ingest(raw, config=config))
    write_ingest_json(result=result, out_file=args.out)

    return 0 if result.ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
