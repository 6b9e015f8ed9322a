from __future__ import annotations

import logging
import re
from typing import Callable

from contracts.recipe import RecipeDraft

from .content import extract_recipe_content
from .contracts import FixFlag, NormalizedText
from .passes import (
    normalize_cooking_terms,
    normalize_whitespace,
    repair_fractions,
    repair_measurements,
    standardize_headers,
)
from .structure import detect_structure, parse_draft

logger = logging.getLogger(__name__)

# Order is part of the contract: fractions and measurements are repaired
# before headers are rewritten.
PASSES: tuple[tuple[FixFlag, Callable[[str], str]], ...] = (
    (FixFlag.WHITESPACE, normalize_whitespace),
    (FixFlag.FRACTIONS, repair_fractions),
    (FixFlag.MEASUREMENTS, repair_measurements),
    (FixFlag.HEADERS, standardize_headers),
    (FixFlag.COOKING_TERMS, normalize_cooking_terms),
)


def fallback_normalize(text: str) -> str:
    """
    Minimal cleanup used when a full pass raises: line endings, spacing and
    the common OCR fraction misreads only.
    """

    cleaned = text.replace("\r\n", "\n").replace("\r", "\n")
    cleaned = re.sub(r"[ \t]+", " ", cleaned)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    cleaned = re.sub(r"(?<![A-Za-z0-9])l/(\d)", r"1/\1", cleaned)
    return cleaned.strip()


def normalize(text: str) -> NormalizedText:
    fixes: set[FixFlag] = set()
    current = text
    try:
        for flag, fn in PASSES:
            updated = fn(current)
            if updated != current:
                fixes.add(flag)
            current = updated
    except Exception:
        logger.warning("text normalization failed, using fallback cleaner", exc_info=True)
        return NormalizedText(text=fallback_normalize(text), fixes=frozenset({FixFlag.FALLBACK}))
    return NormalizedText(text=current, fixes=frozenset(fixes))


def prepare_text(text: str, *, trim_boilerplate: bool = False) -> NormalizedText:
    """
    Normalize, optionally trim page furniture, then insert inferred section
    headers. The returned text is what `parse_draft` consumes.
    """

    normalized = normalize(text)
    current = normalized.text
    if trim_boilerplate:
        current = extract_recipe_content(current)

    structured = detect_structure(current)
    fixes = set(normalized.fixes)
    if structured != current:
        fixes.add(FixFlag.STRUCTURE_INFERRED)
    return NormalizedText(text=structured, fixes=frozenset(fixes))


def normalize_and_structure(text: str, *, trim_boilerplate: bool = False) -> RecipeDraft:
    """
    Raw extracted text -> RecipeDraft. `source_text` on the draft holds the
    normalized, structured text.
    """

    return parse_draft(prepare_text(text, trim_boilerplate=trim_boilerplate).text)
