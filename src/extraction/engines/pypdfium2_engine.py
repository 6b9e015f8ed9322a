from __future__ import annotations

import asyncio
import io
import logging
from typing import Any, Callable

from contracts.errors import ErrorKind

from ..contracts import ExtractionConfig, MediaKind
from ..signal import CancelSignal
from .base import EngineError, ExtractionEngine, ProgressFn
from .tesseract_cli import TesseractCliEngine

logger = logging.getLogger(__name__)

PROGRESS_BASELINE = 0.2  # document loaded
PROGRESS_WEIGHT = 0.7  # share of the local scale spent on pages


def page_progress(pages_done: int, total_pages: int, weight: float = PROGRESS_WEIGHT) -> float:
    if total_pages <= 0:
        return PROGRESS_BASELINE + weight
    return PROGRESS_BASELINE + weight * (pages_done / total_pages)


def _batches(page_count: int, batch_size: int) -> list[list[int]]:
    return [list(range(start, min(start + batch_size, page_count))) for start in range(0, page_count, batch_size)]


def _ignore_progress(progress: float) -> None:
    pass


class Pypdfium2Engine(ExtractionEngine):
    """
    PDF text extraction with pypdfium2.

    pdfium is not thread-safe, so page calls are issued one at a time from a
    worker thread; each batch is joined before the next one starts. Scanned
    PDFs without a text layer produce an empty-result failure rather than a
    timeout, unless `pdf_ocr_fallback` is set: then each page is rendered and
    read by the tesseract engine, and the first half of the page band is spent
    on the text pass.
    """

    media_kind = MediaKind.PDF

    def __init__(self, *, ocr: TesseractCliEngine | None = None) -> None:
        self._ocr = ocr or TesseractCliEngine()

    def backend_id(self) -> str:
        return "pypdfium2"

    def backend_version(self) -> str | None:
        try:
            import pypdfium2 as pdfium  # type: ignore

            return getattr(pdfium, "__version__", None)
        except ImportError:
            return None

    def _require_pdfium(self):
        try:
            import pypdfium2 as pdfium  # type: ignore

            return pdfium
        except ImportError as e:
            raise RuntimeError("Missing dependency: pypdfium2 is required for PDF extraction.") from e

    def is_available(self) -> bool:
        try:
            self._require_pdfium()
        except RuntimeError:
            return False
        return True

    async def extract_text(
        self,
        *,
        payload: bytes,
        config: ExtractionConfig,
        report: ProgressFn,
        signal: CancelSignal,
    ) -> str:
        pdfium = self._require_pdfium()
        report(0.0)

        try:
            doc = await asyncio.to_thread(pdfium.PdfDocument, payload)
        except pdfium.PdfiumError as e:
            raise EngineError(
                kind=ErrorKind.UNSUPPORTED_FORMAT,
                code="EXTRACT_PDF_UNREADABLE",
                message="This PDF could not be opened. It may be corrupt or password protected.",
                remedy="Provide an unprotected copy of the PDF, or paste the recipe text directly.",
                detail={"error": repr(e)},
            ) from e

        inflight: asyncio.Future[list[str]] | None = None
        try:
            page_count = len(doc)
            if page_count > config.pdf_max_pages:
                raise EngineError(
                    kind=ErrorKind.OVERSIZED_INPUT,
                    code="EXTRACT_PDF_TOO_MANY_PAGES",
                    message=f"This PDF has {page_count} pages; at most {config.pdf_max_pages} can be processed.",
                    remedy="Extract just the pages with the recipe into a smaller PDF.",
                    detail={"page_count": page_count, "max_pages": config.pdf_max_pages},
                )
            report(PROGRESS_BASELINE)

            chunked = len(payload) > config.pdf_chunk_threshold_bytes
            batches = _batches(page_count, config.pdf_batch_pages) if chunked else [list(range(page_count))]
            weight = PROGRESS_WEIGHT / 2 if config.pdf_ocr_fallback else PROGRESS_WEIGHT
            logger.info(
                "pdf extraction started",
                extra={"page_count": page_count, "strategy": "chunked" if chunked else "standard", "batches": len(batches)},
            )

            loop = asyncio.get_running_loop()
            pages_done = 0
            texts: list[str] = []

            def _on_page() -> None:
                nonlocal pages_done
                pages_done += 1
                report(page_progress(pages_done, page_count, weight))

            for batch_index, batch in enumerate(batches):
                signal.raise_if_cancelled()
                inflight = loop.run_in_executor(
                    None,
                    _extract_pages,
                    doc,
                    batch,
                    signal,
                    pdfium.PdfiumError,
                    lambda: loop.call_soon_threadsafe(_on_page),
                )
                texts.extend(await asyncio.shield(inflight))
                inflight = None

                if chunked and batch_index < len(batches) - 1:
                    await asyncio.sleep(config.pdf_batch_delay_s)

            text = "\n\n".join(t.strip() for t in texts if t.strip())
            ocr_used = False
            if not text and config.pdf_ocr_fallback:
                ocr_used = True
                text = await self._ocr_pages(
                    doc=doc,
                    page_count=page_count,
                    config=config,
                    report=report,
                    signal=signal,
                    start=PROGRESS_BASELINE + weight,
                )
        finally:
            if inflight is not None and not inflight.done():
                # The worker thread stops at its next page boundary once the signal is
                # tripped; wait for it before closing the document under it.
                await asyncio.wait({inflight})
            doc.close()

        if not text:
            raise EngineError(
                kind=ErrorKind.EMPTY_RESULT,
                code="EXTRACT_PDF_NO_TEXT",
                detail={"page_count": page_count, "ocr_fallback": ocr_used},
            )
        return text

    async def _ocr_pages(
        self,
        *,
        doc: Any,
        page_count: int,
        config: ExtractionConfig,
        report: ProgressFn,
        signal: CancelSignal,
        start: float,
    ) -> str:
        """
        Render each page and read it with the tesseract engine, one page at a
        time. Pages tesseract finds no text on are skipped.
        """

        logger.info("pdf has no text layer, running OCR fallback", extra={"page_count": page_count})
        scale = config.pdf_render_dpi / 72.0  # PDF points are 1/72 inch
        span = PROGRESS_BASELINE + PROGRESS_WEIGHT - start
        texts: list[str] = []
        for index in range(page_count):
            signal.raise_if_cancelled()
            png = await asyncio.to_thread(_render_page_png, doc, index, scale)
            try:
                page_text = await self._ocr.extract_text(
                    payload=png,
                    config=config,
                    report=_ignore_progress,
                    signal=signal,
                )
            except EngineError as e:
                if e.kind is not ErrorKind.EMPTY_RESULT:
                    raise
                page_text = ""
            if page_text.strip():
                texts.append(page_text.strip())
            report(start + span * ((index + 1) / page_count))
        return "\n\n".join(texts)


def _extract_pages(
    doc: Any,
    page_indices: list[int],
    signal: CancelSignal,
    page_error: type[Exception],
    on_page: Callable[[], None],
) -> list[str]:
    texts: list[str] = []
    for index in page_indices:
        signal.raise_if_cancelled()
        page = doc[index]
        try:
            textpage = page.get_textpage()
            try:
                texts.append(textpage.get_text_range())
            finally:
                textpage.close()
        except page_error as e:
            logger.warning("pdf page extraction failed", extra={"page_num": index + 1, "error": repr(e)})
            texts.append("")
        finally:
            page.close()
        on_page()
    return texts


def _render_page_png(doc: Any, index: int, scale: float) -> bytes:
    page = doc[index]
    try:
        pil_img = page.render(scale=scale).to_pil().convert("L")
    finally:
        page.close()
    buf = io.BytesIO()
    pil_img.save(buf, format="PNG")
    return buf.getvalue()
