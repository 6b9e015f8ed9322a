from .base import EngineError, ExtractionEngine, ProgressFn
from .plain_text import PlainTextEngine
from .pypdfium2_engine import Pypdfium2Engine
from .tesseract_cli import TesseractCliEngine

__all__ = [
    "EngineError",
    "ExtractionEngine",
    "PlainTextEngine",
    "ProgressFn",
    "Pypdfium2Engine",
    "TesseractCliEngine",
]
