from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from observability.logging_config import configure_logging

from .artifacts import write_extraction_json
from .contracts import MB, ExtractionConfig, MediaKind, RawInput
from .module import ExtractionOrchestrator


def add_extraction_arguments(p: argparse.ArgumentParser) -> None:
    """
    Flags shared by every command that runs the extraction layer.
    """

    p.add_argument(
        "--kind",
        choices=[k.value for k in MediaKind],
        default=None,
        help="Declared media kind. Default: detect from extension and content.",
    )
    p.add_argument("--language", default="eng", help="Tesseract language hint (default: eng).")
    p.add_argument("--psm", type=int, default=None, help="Tesseract page segmentation mode (optional).")
    p.add_argument("--image-timeout-s", type=float, default=240.0, help="Image OCR timeout in seconds.")
    p.add_argument(
        "--pdf-timeout-s",
        type=float,
        default=180.0,
        help="Timeout for PDFs up to the chunking threshold; larger files scale up to 600 s.",
    )
    p.add_argument("--max-pdf-mb", type=int, default=20, help="PDF size limit in MB.")
    p.add_argument("--max-image-mb", type=int, default=15, help="Image size limit in MB.")
    p.add_argument(
        "--pdf-ocr-fallback",
        action="store_true",
        help="OCR the rendered pages of PDFs that have no text layer (requires tesseract).",
    )
    p.add_argument("--log-level", default="INFO", help="Logging level (default: INFO).")


def extraction_config_from_args(args: argparse.Namespace) -> ExtractionConfig:
    return ExtractionConfig(
        max_image_bytes=args.max_image_mb * MB,
        max_pdf_bytes=args.max_pdf_mb * MB,
        image_timeout_s=args.image_timeout_s,
        pdf_timeout_min_s=args.pdf_timeout_s,
        pdf_timeout_max_s=max(args.pdf_timeout_s, 600.0),
        ocr_language=args.language,
        ocr_psm=args.psm,
        pdf_ocr_fallback=args.pdf_ocr_fallback,
    )


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="recipe-extract",
        description="Extract plain text from a recipe photo, PDF or text file and write it as JSON.",
    )
    p.add_argument("--input", required=True, type=Path, help="Input file (image, PDF or text).")
    p.add_argument("--out", required=True, type=Path, help="Output JSON artifact file path.")
    add_extraction_arguments(p)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if not args.input.is_file():
        parser.error(f"input file not found: {args.input}")
    configure_logging(args.log_level)

    config = extraction_config_from_args(args)
    declared = MediaKind(args.kind) if args.kind else None
    raw = RawInput.from_path(args.input, declared_kind=declared)

    orchestrator = ExtractionOrchestrator(config=config)
    result = asyncio.run(orchestrator.extract(raw))
    write_extraction_json(result=result, out_file=args.out)

    return 0 if result.ok else 2


if __name__ == "__main__":
    raise SystemExit(main())
