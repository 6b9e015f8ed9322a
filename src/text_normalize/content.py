from __future__ import annotations

import logging
import re

logger = logging.getLogger(__name__)

_START_MARKERS = re.compile(
    r"^[ \t]*(?:[il1|]ngredients\b|you(?:'ll|\s+will)\s+need\b|yield:.*servings|prep(?:aration)?\s+time\b"
    r"|cook\s+time\b|baking\s+time\b|total\s+time\b)",
    re.IGNORECASE | re.MULTILINE,
)
_END_MARKERS = re.compile(
    r"^[ \t]*(?:nutrition(?:al)?\s+(?:information|facts)|serving\s+suggestions?|source:|adapted\s+from"
    r"|recipe\s+by\b|enjoy!)",
    re.IGNORECASE | re.MULTILINE,
)

TITLE_MAX_CHARS = 80


def _title_start(text: str, start: int) -> int:
    """
    Move `start` back to include a short title line directly above it.
    """

    before = text[:start].rstrip("\n")
    if not before.strip():
        return 0
    line_start = before.rfind("\n") + 1
    candidate = before[line_start:].strip()
    if candidate and len(candidate) <= TITLE_MAX_CHARS and not candidate.endswith((".", "!", "?", ",")):
        return line_start
    return start


def extract_recipe_content(text: str) -> str:
    """
    Trim page furniture (blog preamble, nutrition panels, footers) around a
    recipe. Returns `text` unchanged when no boundary is found, and never
    returns an empty string for non-blank input.
    """

    if not text.strip():
        return text

    start_match = _START_MARKERS.search(text)
    start = _title_start(text, start_match.start()) if start_match else 0

    end = len(text)
    for m in _END_MARKERS.finditer(text):
        if m.start() > start:
            end = m.start()
            break

    content = text[start:end].strip()
    if not content:
        return text

    if start > 0 or end < len(text):
        logger.info(
            "recipe content trimmed",
            extra={"original_chars": len(text), "kept_chars": len(content), "start": start, "end": end},
        )
    return content
