from __future__ import annotations

import asyncio
import io
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from PIL import Image

from contracts.errors import ErrorKind
from extraction import ExtractionConfig, ExtractionOrchestrator, MediaKind, RawInput
from extraction.engines import EngineError, PlainTextEngine, Pypdfium2Engine, TesseractCliEngine
from extraction.engines.tesseract_cli import _prepare_image
from extraction.signal import CancelSignal, ExtractionCancelled


def _png(size: tuple[int, int] = (40, 20)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, "white").save(buf, format="PNG")
    return buf.getvalue()


def _noop(progress: float) -> None:
    pass


# --- pypdfium2 fakes -------------------------------------------------------


class _FakePdfiumError(Exception):
    pass


class _FakeTextPage:
    def __init__(self, text: str) -> None:
        self.text = text
        self.closed = False

    def get_text_range(self) -> str:
        return self.text

    def close(self) -> None:
        self.closed = True


class _FakeBitmap:
    def __init__(self, scale: float) -> None:
        self.scale = scale

    def to_pil(self) -> Image.Image:
        return Image.new("RGB", (max(1, round(20 * self.scale)), max(1, round(10 * self.scale))), "white")


class _FakePage:
    def __init__(self, doc: "_FakeDoc", text: str) -> None:
        self._doc = doc
        self._text = text

    def get_textpage(self) -> _FakeTextPage:
        return _FakeTextPage(self._text)

    def render(self, *, scale: float) -> _FakeBitmap:
        self._doc.render_scales.append(scale)
        return _FakeBitmap(scale)

    def close(self) -> None:
        self._doc.open_pages -= 1


class _FakeDoc:
    def __init__(self, texts: list[str]) -> None:
        self.texts = texts
        self.open_pages = 0
        self.max_open_pages = 0
        self.render_scales: list[float] = []
        self.closed = False

    def __len__(self) -> int:
        return len(self.texts)

    def __getitem__(self, index: int) -> _FakePage:
        self.open_pages += 1
        self.max_open_pages = max(self.max_open_pages, self.open_pages)
        return _FakePage(self, self.texts[index])

    def close(self) -> None:
        self.closed = True


class _FakePdfium:
    PdfiumError = _FakePdfiumError

    def __init__(self, doc: _FakeDoc | None) -> None:
        self.doc = doc

    def PdfDocument(self, payload: bytes) -> _FakeDoc:
        if self.doc is None:
            raise _FakePdfiumError("Failed to load document (PDFium: Incorrect password error).")
        return self.doc


class TestPypdfium2Engine(unittest.IsolatedAsyncioTestCase):
    async def test_scanned_pdf_is_empty_result(self) -> None:
        doc = _FakeDoc(["", "   "])
        orchestrator = ExtractionOrchestrator(engines={MediaKind.PDF: Pypdfium2Engine()})

        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(doc)):
            result = await orchestrator.extract(RawInput(payload=b"%PDF-1.4 scan", filename="scan.pdf"))

        self.assertEqual(result.kind, ErrorKind.EMPTY_RESULT)
        self.assertEqual(result.code, "EXTRACT_PDF_NO_TEXT")
        self.assertIn("photo", result.remedy)
        self.assertTrue(doc.closed)

    async def test_chunked_extraction_processes_pages_one_at_a_time(self) -> None:
        doc = _FakeDoc([f"page {i}" for i in range(1, 6)])
        cfg = ExtractionConfig(pdf_chunk_threshold_bytes=1, pdf_batch_pages=2, pdf_batch_delay_s=0.0)
        reports: list[float] = []

        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(doc)):
            text = await Pypdfium2Engine().extract_text(
                payload=b"%PDF-1.4 text", config=cfg, report=reports.append, signal=CancelSignal()
            )
            await asyncio.sleep(0)

        self.assertEqual(text, "page 1\n\npage 2\n\npage 3\n\npage 4\n\npage 5")
        self.assertEqual(doc.max_open_pages, 1)
        self.assertEqual(doc.open_pages, 0)
        self.assertTrue(doc.closed)
        self.assertAlmostEqual(reports[-1], 0.9)
        self.assertEqual(reports, sorted(reports))

    async def test_page_limit(self) -> None:
        doc = _FakeDoc(["x"] * 51)
        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(doc)):
            with self.assertRaises(EngineError) as ctx:
                await Pypdfium2Engine().extract_text(
                    payload=b"%PDF-", config=ExtractionConfig(), report=_noop, signal=CancelSignal()
                )
        self.assertEqual(ctx.exception.kind, ErrorKind.OVERSIZED_INPUT)
        self.assertEqual(ctx.exception.code, "EXTRACT_PDF_TOO_MANY_PAGES")
        self.assertTrue(doc.closed)

    async def test_unreadable_pdf(self) -> None:
        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(None)):
            with self.assertRaises(EngineError) as ctx:
                await Pypdfium2Engine().extract_text(
                    payload=b"%PDF-", config=ExtractionConfig(), report=_noop, signal=CancelSignal()
                )
        self.assertEqual(ctx.exception.kind, ErrorKind.UNSUPPORTED_FORMAT)

    async def test_cancel_between_pages(self) -> None:
        doc = _FakeDoc(["a", "b"])
        signal = CancelSignal()
        signal.cancel()
        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(doc)):
            with self.assertRaises(ExtractionCancelled):
                await Pypdfium2Engine().extract_text(
                    payload=b"%PDF-", config=ExtractionConfig(), report=_noop, signal=signal
                )
        self.assertTrue(doc.closed)


# --- tesseract fakes --------------------------------------------------------


class _FakeProc:
    def __init__(self, *, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0, delay_s: float = 0.0) -> None:
        self._stdout = stdout
        self._stderr = stderr
        self._final_returncode = returncode
        self._delay_s = delay_s
        self.returncode: int | None = None
        self.killed = False

    async def communicate(self) -> tuple[bytes, bytes]:
        await asyncio.sleep(self._delay_s)
        self.returncode = self._final_returncode
        return self._stdout, self._stderr

    def kill(self) -> None:
        self.killed = True
        self.returncode = -9

    async def wait(self) -> int:
        return self.returncode


class TestTesseractCliEngine(unittest.IsolatedAsyncioTestCase):
    def _patch_exec(self, proc: _FakeProc, calls: list):
        async def _exec(*cmd, **kwargs):
            calls.append(cmd)
            return proc

        return patch("extraction.engines.tesseract_cli.asyncio.create_subprocess_exec", new=_exec)

    async def test_success(self) -> None:
        calls: list = []
        proc = _FakeProc(stdout=b"2 cups flour\n1 tsp salt\n")
        cfg = ExtractionConfig(ocr_psm=6)
        reports: list[float] = []

        with self._patch_exec(proc, calls):
            text = await TesseractCliEngine().extract_text(
                payload=_png(), config=cfg, report=reports.append, signal=CancelSignal()
            )

        self.assertEqual(text, "2 cups flour\n1 tsp salt\n")
        cmd = list(calls[0])
        self.assertEqual(cmd[0], "tesseract")
        self.assertEqual(cmd[2:], ["stdout", "-l", "eng", "--psm", "6"])
        self.assertEqual(reports[-1], 0.9)

    async def test_insufficient_text(self) -> None:
        with self._patch_exec(_FakeProc(stdout=b" ab \n"), []):
            with self.assertRaises(EngineError) as ctx:
                await TesseractCliEngine().extract_text(
                    payload=_png(), config=ExtractionConfig(), report=_noop, signal=CancelSignal()
                )
        self.assertEqual(ctx.exception.kind, ErrorKind.EMPTY_RESULT)
        self.assertEqual(ctx.exception.code, "EXTRACT_INSUFFICIENT_TEXT")

    async def test_non_zero_exit(self) -> None:
        with self._patch_exec(_FakeProc(stderr=b"Error opening data file", returncode=1), []):
            with self.assertRaises(EngineError) as ctx:
                await TesseractCliEngine().extract_text(
                    payload=_png(), config=ExtractionConfig(), report=_noop, signal=CancelSignal()
                )
        self.assertEqual(ctx.exception.kind, ErrorKind.UNKNOWN)
        self.assertEqual(ctx.exception.detail["stderr"], "Error opening data file")

    async def test_cancel_kills_the_process(self) -> None:
        proc = _FakeProc(stdout=b"late text here", delay_s=10.0)
        signal = CancelSignal()
        cfg = ExtractionConfig(ocr_poll_interval_s=0.01)
        reports: list[float] = []

        async def _cancel_soon() -> None:
            await asyncio.sleep(0.05)
            signal.cancel()

        with self._patch_exec(proc, []):
            canceller = asyncio.ensure_future(_cancel_soon())
            with self.assertRaises(ExtractionCancelled):
                await TesseractCliEngine().extract_text(
                    payload=_png(), config=cfg, report=reports.append, signal=signal
                )
            await canceller

        self.assertTrue(proc.killed)
        self.assertTrue(all(0.1 <= r < 0.9 for r in reports[1:]))

    async def test_binary_missing(self) -> None:
        async def _exec(*cmd, **kwargs):
            raise FileNotFoundError("tesseract")

        with patch("extraction.engines.tesseract_cli.asyncio.create_subprocess_exec", new=_exec):
            with self.assertRaises(EngineError) as ctx:
                await TesseractCliEngine().extract_text(
                    payload=_png(), config=ExtractionConfig(), report=_noop, signal=CancelSignal()
                )
        self.assertEqual(ctx.exception.code, "EXTRACT_BACKEND_NOT_INSTALLED")

    async def test_undecodable_image(self) -> None:
        with self.assertRaises(EngineError) as ctx:
            await TesseractCliEngine().extract_text(
                payload=b"definitely not an image", config=ExtractionConfig(), report=_noop, signal=CancelSignal()
            )
        self.assertEqual(ctx.exception.kind, ErrorKind.UNSUPPORTED_FORMAT)

    def test_large_images_are_downsized_to_grayscale(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            out = Path(tmp) / "page.png"
            megapixels = _prepare_image(_png((200, 100)), out, max_side_px=50)
            with Image.open(out) as img:
                self.assertEqual(img.size, (50, 25))
                self.assertEqual(img.mode, "L")
        self.assertAlmostEqual(megapixels, 50 * 25 / 1_000_000)


def _patch_exec_sequence(procs: list[_FakeProc], calls: list):
    async def _exec(*cmd, **kwargs):
        calls.append(cmd)
        return procs.pop(0)

    return patch("extraction.engines.tesseract_cli.asyncio.create_subprocess_exec", new=_exec)


class TestPdfOcrFallback(unittest.IsolatedAsyncioTestCase):
    async def test_scanned_pdf_is_read_page_by_page_when_enabled(self) -> None:
        doc = _FakeDoc(["", "  "])
        procs = [_FakeProc(stdout=b"500 g bread flour\n350 g water\n"), _FakeProc(stdout=b" ab ")]
        calls: list = []
        cfg = ExtractionConfig(pdf_ocr_fallback=True, pdf_render_dpi=144)
        reports: list[float] = []

        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(doc)):
            with _patch_exec_sequence(procs, calls):
                text = await Pypdfium2Engine().extract_text(
                    payload=b"%PDF-1.4 scan", config=cfg, report=reports.append, signal=CancelSignal()
                )

        self.assertEqual(text, "500 g bread flour\n350 g water")
        self.assertEqual(len(calls), 2)
        self.assertEqual(doc.render_scales, [2.0, 2.0])
        self.assertEqual(doc.open_pages, 0)
        self.assertTrue(doc.closed)
        self.assertEqual(reports, sorted(reports))
        self.assertAlmostEqual(reports[-1], 0.9)

    async def test_ocr_finding_nothing_keeps_empty_result(self) -> None:
        doc = _FakeDoc(["", ""])
        procs = [_FakeProc(stdout=b""), _FakeProc(stdout=b"..")]
        cfg = ExtractionConfig(pdf_ocr_fallback=True)

        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(doc)):
            with _patch_exec_sequence(procs, []):
                with self.assertRaises(EngineError) as ctx:
                    await Pypdfium2Engine().extract_text(
                        payload=b"%PDF-1.4 scan", config=cfg, report=_noop, signal=CancelSignal()
                    )

        self.assertEqual(ctx.exception.kind, ErrorKind.EMPTY_RESULT)
        self.assertEqual(ctx.exception.code, "EXTRACT_PDF_NO_TEXT")
        self.assertTrue(ctx.exception.detail["ocr_fallback"])
        self.assertTrue(doc.closed)

    async def test_fallback_is_off_by_default(self) -> None:
        doc = _FakeDoc([""])
        calls: list = []

        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(doc)):
            with _patch_exec_sequence([], calls):
                with self.assertRaises(EngineError) as ctx:
                    await Pypdfium2Engine().extract_text(
                        payload=b"%PDF-1.4 scan", config=ExtractionConfig(), report=_noop, signal=CancelSignal()
                    )

        self.assertEqual(ctx.exception.kind, ErrorKind.EMPTY_RESULT)
        self.assertFalse(ctx.exception.detail["ocr_fallback"])
        self.assertEqual(calls, [])
        self.assertEqual(doc.render_scales, [])

    async def test_text_layer_skips_ocr(self) -> None:
        doc = _FakeDoc(["Banana Bread"])
        calls: list = []
        reports: list[float] = []

        with patch.object(Pypdfium2Engine, "_require_pdfium", return_value=_FakePdfium(doc)):
            with _patch_exec_sequence([], calls):
                text = await Pypdfium2Engine().extract_text(
                    payload=b"%PDF-1.4 text",
                    config=ExtractionConfig(pdf_ocr_fallback=True),
                    report=reports.append,
                    signal=CancelSignal(),
                )
                await asyncio.sleep(0)

        self.assertEqual(text, "Banana Bread")
        self.assertEqual(calls, [])
        self.assertAlmostEqual(reports[-1], 0.55)


class TestImageRequestCancellation(unittest.IsolatedAsyncioTestCase):
    async def test_cancel_mid_ocr_silences_callbacks_and_clears_timers(self) -> None:
        proc = _FakeProc(stdout=b"text that never arrives", delay_s=10.0)
        calls: list = []
        progress: list[int] = []
        warnings: list = []
        completed: list = []
        errors: list = []
        cfg = ExtractionConfig(
            ocr_poll_interval_s=0.01,
            progress_interval_s=0.05,
            stall_warning_s=0.05,
            long_running_warning_s=5.0,
            stall_check_interval_s=0.01,
        )
        orchestrator = ExtractionOrchestrator(config=cfg, engines={MediaKind.IMAGE: TesseractCliEngine()})

        with patch.object(TesseractCliEngine, "is_available", return_value=True):
            with _patch_exec_sequence([proc], calls):
                task = orchestrator.start(
                    RawInput(payload=_png(), filename="recipe.png"),
                    on_progress=progress.append,
                    on_warning=warnings.append,
                    on_complete=completed.append,
                    on_error=errors.append,
                    request_id="ocr-1",
                )
                while not calls:
                    await asyncio.sleep(0.01)
                await asyncio.sleep(0.1)
                self.assertEqual(orchestrator.active_requests(), ["ocr-1"])

                result = await task.cancel()
                progress_at_cancel = list(progress)
                warnings_at_cancel = list(warnings)
                await asyncio.sleep(0.3)

        self.assertEqual(result.kind, ErrorKind.CANCELLED)
        self.assertTrue(proc.killed)
        self.assertEqual(progress, progress_at_cancel)
        self.assertEqual(warnings, warnings_at_cancel)
        self.assertNotIn(100, progress)
        self.assertEqual(completed, [])
        self.assertEqual(errors, [])
        self.assertEqual(orchestrator.active_requests(), [])


class TestPlainTextEngine(unittest.IsolatedAsyncioTestCase):
    async def _extract(self, payload: bytes) -> str:
        return await PlainTextEngine().extract_text(
            payload=payload, config=ExtractionConfig(), report=_noop, signal=CancelSignal()
        )

    async def test_decoding(self) -> None:
        self.assertEqual(await self._extract("1 ½ cups".encode("utf-8")), "1 ½ cups")
        self.assertEqual(await self._extract(b"\xef\xbb\xbfMix."), "Mix.")
        self.assertEqual(await self._extract(b"caf\xe9 au lait"), "café au lait")

    async def test_whitespace_only_is_empty_result(self) -> None:
        with self.assertRaises(EngineError) as ctx:
            await self._extract(b" \n\t\n")
        self.assertEqual(ctx.exception.kind, ErrorKind.EMPTY_RESULT)

    async def test_disguised_documents(self) -> None:
        for payload, code in (
            (b"{\\rtf1\\ansi recipe}", "EXTRACT_RICH_DOCUMENT"),
            (bytes(range(32)) * 10, "EXTRACT_BINARY_CONTENT"),
        ):
            with self.subTest(code=code):
                with self.assertRaises(EngineError) as ctx:
                    await self._extract(payload)
                self.assertEqual(ctx.exception.code, code)


if __name__ == "__main__":
    unittest.main()
