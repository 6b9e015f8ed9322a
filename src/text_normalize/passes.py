"""
Text cleanup passes for raw OCR/PDF/pasted recipe text.

Each pass is a pure `str -> str` function that does not rely on any other pass
having run. Their order is fixed by `text_normalize.module.PASSES`: fractions
and measurements are repaired before headers are rewritten, so header
detection sees clean quantity lines.
"""

from __future__ import annotations

import re

# --- whitespace --------------------------------------------------------------

_INLINE_SPACE = re.compile(r"[ \t\f\v\u00a0]+")
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_whitespace(text: str) -> str:
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _INLINE_SPACE.sub(" ", text)
    text = "\n".join(line.strip() for line in text.split("\n"))
    return _BLANK_RUNS.sub("\n\n", text).strip()


# --- fractions ---------------------------------------------------------------

VULGAR_FRACTIONS: dict[str, str] = {
    "½": "1/2",
    "⅓": "1/3",
    "⅔": "2/3",
    "¼": "1/4",
    "¾": "3/4",
    "⅕": "1/5",
    "⅖": "2/5",
    "⅗": "3/5",
    "⅘": "4/5",
    "⅙": "1/6",
    "⅚": "5/6",
    "⅛": "1/8",
    "⅜": "3/8",
    "⅝": "5/8",
    "⅞": "7/8",
}

_VULGAR_TABLE = str.maketrans(VULGAR_FRACTIONS)
_MIXED_VULGAR = re.compile(r"(\d)[ \t]?([" + "".join(VULGAR_FRACTIONS) + r"])")
# OCR reads the "1" of "1/2" as a lowercase L, a capital I or a pipe.
_OCR_NUMERATOR = re.compile(r"(?<![A-Za-z0-9])[lI|](?=/\d)")


def repair_fractions(text: str) -> str:
    text = text.replace("⁄", "/")
    text = _OCR_NUMERATOR.sub("1", text)
    text = _MIXED_VULGAR.sub(lambda m: f"{m.group(1)} {VULGAR_FRACTIONS[m.group(2)]}", text)
    return text.translate(_VULGAR_TABLE)


# --- measurements ------------------------------------------------------------

_OCR_UNIT_FIXES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?<![A-Za-z])cup5(?![A-Za-z0-9])", re.IGNORECASE), "cups"),
    (re.compile(r"(?<![A-Za-z])tb5p(?![A-Za-z0-9])", re.IGNORECASE), "tbsp"),
    (re.compile(r"(?<![A-Za-z])t5p(?![A-Za-z0-9])", re.IGNORECASE), "tsp"),
    (re.compile(r"(?<![A-Za-z0-9])0z(?![A-Za-z0-9])", re.IGNORECASE), "oz"),
    (re.compile(r"(?<=\d )1bs?(?![A-Za-z0-9])"), "lb"),
)

# Order matters: longer spellings before their prefixes ("kg" before "g").
_SPACED_UNITS = "tablespoons?|teaspoons?|tbsp|tsp|cups?|ounces?|oz|pounds?|lbs?|grams?|kg|ml|g|l"
_QTY_UNIT = re.compile(rf"(?<=\d)[ \t]*({_SPACED_UNITS})(?![A-Za-z])", re.IGNORECASE)

_CUP_QTY = re.compile(
    r"(?<![\d/.])(?P<qty>\d+ \d+/\d+|\d+/\d+|\d+(?:\.\d+)?) (?P<unit>cups?)(?![A-Za-z])",
    re.IGNORECASE,
)
_DEGREE_OCR = re.compile(r"(\d+)[ \t]*[oO°][ \t]*([CF])(?![A-Za-z])")


def quantity_value(qty: str) -> float | None:
    """
    Numeric value of "2", "1.5", "1/2" or "1 1/2"; None when unparseable.
    """

    total = 0.0
    for part in qty.split():
        if "/" in part:
            num, _, den = part.partition("/")
            if not (num.isdigit() and den.isdigit()) or int(den) == 0:
                return None
            total += int(num) / int(den)
        else:
            try:
                total += float(part)
            except ValueError:
                return None
    return total


def _cup_agreement(m: re.Match[str]) -> str:
    value = quantity_value(m.group("qty"))
    if value is None:
        return m.group(0)
    unit = "cup" if value <= 1 else "cups"
    return f"{m.group('qty')} {unit}"


def repair_measurements(text: str) -> str:
    for pattern, replacement in _OCR_UNIT_FIXES:
        text = pattern.sub(replacement, text)
    text = _QTY_UNIT.sub(lambda m: " " + m.group(1), text)
    text = _CUP_QTY.sub(_cup_agreement, text)
    return _DEGREE_OCR.sub(r"\1°\2", text)


# --- section headers ---------------------------------------------------------

_SECTION_SYNONYMS: tuple[tuple[str, str], ...] = (
    (r"[il1|]ngredients?(?:\s+list)?", "INGREDIENTS"),
    (r"you(?:'ll|\s+will)\s+need", "INGREDIENTS"),
    (r"what\s+you(?:'ll)?\s+need", "INGREDIENTS"),
    (r"instructions?", "INSTRUCTIONS"),
    (r"d[i1l]rections?", "INSTRUCTIONS"),
    (r"method", "INSTRUCTIONS"),
    (r"preparation", "INSTRUCTIONS"),
    (r"steps", "INSTRUCTIONS"),
    (r"procedure", "INSTRUCTIONS"),
    (r"how\s+to\s+make(?:\s+it)?", "INSTRUCTIONS"),
    (r"cook'?s\s+notes?", "NOTES"),
    (r"notes?", "NOTES"),
    (r"tips", "NOTES"),
)

# Headers that carry a value ("Serves 4", "Prep time: 10 minutes").
_VALUED_SYNONYMS: tuple[tuple[str, str], ...] = (
    (r"prep(?:aration)?\s+time|prep", "PREP TIME"),
    (r"cook(?:ing)?\s+time|bak(?:e|ing)\s+time", "COOK TIME"),
    (r"total\s+time", "TOTAL TIME"),
    (r"servings|serves|yield|makes", "SERVINGS"),
)

_SECTION_RULES = tuple(
    (re.compile(rf"^(?:{syn})\s*(?::\s*(?P<rest>.*))?$", re.IGNORECASE), canon) for syn, canon in _SECTION_SYNONYMS
)
_VALUED_RULES = tuple(
    (
        re.compile(rf"^(?:{syn})\b\s*(?::\s*(?P<value>.*)|(?P<bare>\d.*))?$", re.IGNORECASE),
        canon,
    )
    for syn, canon in _VALUED_SYNONYMS
)

CANONICAL_SECTIONS = ("INGREDIENTS", "INSTRUCTIONS", "NOTES")
CANONICAL_VALUED = ("PREP TIME", "COOK TIME", "TOTAL TIME", "SERVINGS")


def _header_lines(line: str) -> list[str] | None:
    core = line.strip().strip("#*_ ").strip()
    if not core:
        return None

    for pattern, canon in _VALUED_RULES:
        m = pattern.match(core)
        if m:
            value = (m.group("value") or m.group("bare") or "").strip().strip("*_ ")
            return ["", f"{canon}: {value}".rstrip(), ""]

    for pattern, canon in _SECTION_RULES:
        m = pattern.match(core)
        if m:
            out = ["", f"{canon}:", ""]
            rest = (m.group("rest") or "").strip().strip("*_ ")
            if rest:
                out.append(rest)
            return out
    return None


def standardize_headers(text: str) -> str:
    out: list[str] = []
    for line in text.split("\n"):
        replaced = _header_lines(line)
        if replaced is None:
            out.append(line)
        else:
            out.extend(replaced)
    return _BLANK_RUNS.sub("\n\n", "\n".join(out)).strip()


# --- cooking terms -----------------------------------------------------------

COOKING_VERBS = (
    "preheat", "mix", "stir", "whisk", "bake", "knead", "fold", "combine", "add", "pour",
    "cover", "shape", "place", "remove", "transfer", "beat", "sift", "roll", "divide",
    "bring", "heat", "cook", "simmer", "let", "allow", "score", "brush", "sprinkle", "cool",
    "serve", "melt", "grease", "dissolve", "proof", "rest", "turn", "spread", "slice",
)
_LEADING_VERB = re.compile(
    r"^(?P<prefix>(?:(?i:step)\s*\d+\s*[:.)-]?\s*|\d+[.)]\s*)?)(?P<verb>" + "|".join(COOKING_VERBS) + r")\b",
    re.MULTILINE,
)
_MID_SENTENCE_NOUN = re.compile(r"(?<=[a-z,] )(Oven|Bowl|Mixture|Dough|Batter|Pan|Loaf)\b")
_DEGREES_WORD = re.compile(r"(\d+)\s*°?\s*degrees?\s*([FC])(?:ahrenheit|elsius)?\b", re.IGNORECASE)
_DEGREES_TRAILING = re.compile(r"(\d+)([CF])\.")


def _lower_nouns(line: str) -> str:
    if not line.rstrip().endswith((".", "!")):
        return line
    return _MID_SENTENCE_NOUN.sub(lambda m: m.group(1).lower(), line)


def normalize_cooking_terms(text: str) -> str:
    text = _LEADING_VERB.sub(lambda m: m.group("prefix") + m.group("verb").capitalize(), text)
    text = "\n".join(_lower_nouns(line) for line in text.split("\n"))
    text = _DEGREES_WORD.sub(lambda m: f"{m.group(1)}°{m.group(2).upper()}", text)
    return _DEGREES_TRAILING.sub(r"\1°\2.", text)
