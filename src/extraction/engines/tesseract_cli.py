from __future__ import annotations

import asyncio
import contextlib
import io
import logging
import math
import shutil
import tempfile
import time
from pathlib import Path

from PIL import Image, ImageOps, UnidentifiedImageError

from contracts.errors import ErrorKind

from ..contracts import ExtractionConfig, MediaKind
from ..signal import CancelSignal, ExtractionCancelled
from .base import EngineError, ExtractionEngine, ProgressFn

logger = logging.getLogger(__name__)

# Local progress band reserved for recognition itself; loading/preprocessing
# sits below it.
OCR_BAND_START = 0.10
OCR_BAND_END = 0.90


def _prepare_image(payload: bytes, out_file: Path, max_side_px: int) -> float:
    """
    Decode, orient and grayscale the upload; write it as PNG for tesseract.

    Returns the prepared image size in megapixels.
    """

    try:
        with Image.open(io.BytesIO(payload)) as opened:
            img = ImageOps.exif_transpose(opened)
            img = img.convert("L")
    except (UnidentifiedImageError, OSError) as e:
        raise EngineError(
            kind=ErrorKind.UNSUPPORTED_FORMAT,
            code="EXTRACT_IMAGE_UNREADABLE",
            message="This image could not be read.",
            remedy="Upload the recipe photo as a JPEG or PNG.",
            detail={"error": repr(e)},
        ) from e

    longest = max(img.size)
    if longest > max_side_px:
        scale = max_side_px / longest
        size = (max(1, round(img.width * scale)), max(1, round(img.height * scale)))
        img = img.resize(size, Image.Resampling.LANCZOS)

    img.save(out_file, format="PNG")
    return (img.width * img.height) / 1_000_000


def _expected_seconds(megapixels: float) -> float:
    return 5.0 + 4.0 * megapixels


def estimated_progress(elapsed_s: float, expected_s: float) -> float:
    """
    Tesseract's CLI reports no progress, so recognition progress is an
    estimate that approaches OCR_BAND_END asymptotically. It flattens for runs
    far beyond the estimate, which is what the stall detector watches for.
    """

    fraction = 1.0 - math.exp(-max(0.0, elapsed_s) / max(expected_s, 0.1))
    return OCR_BAND_START + (OCR_BAND_END - OCR_BAND_START) * fraction


class TesseractCliEngine(ExtractionEngine):
    """
    OCR via the `tesseract` CLI, run as an asyncio subprocess.

    The subprocess is killed on cancellation, timeout and error; the prepared
    image lives in a temporary directory removed on every exit path.
    """

    media_kind = MediaKind.IMAGE

    def backend_id(self) -> str:
        return "tesseract_cli"

    def is_available(self) -> bool:
        return shutil.which("tesseract") is not None

    async def extract_text(
        self,
        *,
        payload: bytes,
        config: ExtractionConfig,
        report: ProgressFn,
        signal: CancelSignal,
    ) -> str:
        report(0.0)
        with tempfile.TemporaryDirectory(prefix="recipe_ocr_") as tmp:
            image_file = Path(tmp) / "page.png"
            megapixels = await asyncio.to_thread(_prepare_image, payload, image_file, config.ocr_max_side_px)
            signal.raise_if_cancelled()
            report(OCR_BAND_START)

            text = await self._run_tesseract(
                image_file=image_file,
                config=config,
                report=report,
                signal=signal,
                expected_s=_expected_seconds(megapixels),
            )

        report(OCR_BAND_END)
        chars = len("".join(text.split()))
        if chars < config.min_ocr_chars:
            raise EngineError(
                kind=ErrorKind.EMPTY_RESULT,
                code="EXTRACT_INSUFFICIENT_TEXT",
                detail={"chars": chars, "min_chars": config.min_ocr_chars},
            )
        return text

    async def _run_tesseract(
        self,
        *,
        image_file: Path,
        config: ExtractionConfig,
        report: ProgressFn,
        signal: CancelSignal,
        expected_s: float,
    ) -> str:
        cmd = ["tesseract", str(image_file), "stdout", "-l", config.ocr_language]
        if config.ocr_psm is not None:
            cmd.extend(["--psm", str(config.ocr_psm)])

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise EngineError(
                kind=ErrorKind.UNKNOWN,
                code="EXTRACT_BACKEND_NOT_INSTALLED",
                message="tesseract binary not found on PATH",
                detail={"expected_command": "tesseract"},
            ) from e

        communicate = asyncio.ensure_future(proc.communicate())
        started = time.monotonic()
        try:
            while True:
                done, _ = await asyncio.wait({communicate}, timeout=config.ocr_poll_interval_s)
                if done:
                    break
                if signal.cancelled:
                    raise ExtractionCancelled(signal.reason or "cancelled")
                report(estimated_progress(time.monotonic() - started, expected_s))
            stdout, stderr = communicate.result()
        finally:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await proc.wait()
                logger.info("tesseract process killed", extra={"elapsed_s": round(time.monotonic() - started, 2)})
            if not communicate.done():
                communicate.cancel()

        if proc.returncode != 0:
            raise EngineError(
                kind=ErrorKind.UNKNOWN,
                code="EXTRACT_OCR_FAILED",
                message="OCR backend returned a non-zero exit code",
                detail={
                    "returncode": proc.returncode,
                    "stderr": (stderr or b"").decode("utf-8", errors="replace")[-4000:],
                },
            )
        return (stdout or b"").decode("utf-8", errors="replace")
