"""
Text normalization and structure detection (extracted text -> RecipeDraft).

- Pure, synchronous functions; no I/O.
- Cleanup passes run in the fixed order of `PASSES`; each is usable alone.
- Structure inference only inserts headers and never drops content.
"""

from .content import extract_recipe_content
from .contracts import FixFlag, NormalizedText
from .ingredients import parse_ingredient_line
from .module import PASSES, fallback_normalize, normalize, normalize_and_structure, prepare_text
from .structure import detect_structure, parse_draft

__all__ = [
    "FixFlag",
    "NormalizedText",
    "PASSES",
    "detect_structure",
    "extract_recipe_content",
    "fallback_normalize",
    "normalize",
    "normalize_and_structure",
    "parse_draft",
    "parse_ingredient_line",
    "prepare_text",
]
