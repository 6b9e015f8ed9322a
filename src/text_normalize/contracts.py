from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FixFlag(str, Enum):
    WHITESPACE = "whitespace"
    FRACTIONS = "fractions"
    MEASUREMENTS = "measurements"
    HEADERS = "headers"
    COOKING_TERMS = "cooking_terms"
    STRUCTURE_INFERRED = "structure_inferred"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class NormalizedText:
    """
    Cleaned text plus the passes that changed it.

    `fixes` is diagnostic only; nothing downstream branches on it.
    """

    text: str
    fixes: frozenset[FixFlag] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text, "fixes": sorted(f.value for f in self.fixes)}
