"""Content heuristics that pick a routing category for a prompt.

Rules are evaluated in order and the first match wins. Order matters:
the keyword checks are coarse and regularly co-occur with regional
language text, so regional detection must run first.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from prompt_router.models import Category

REGIONAL_CHARS = frozenset("ÄäŇňÖöŞşÜüÝýŽž")

REGIONAL_WORDS = (
    "salam", "sagbol", "haýr", "gowy", "ýagşy",
    "bolýar", "näme", "bilen", "üçin", "gerek",
)

CODING_KEYWORDS = (
    "code", "app", "function", "program", "website", "api",
    "algorithm", "debug", "software", "develop",
)
# Phrase patterns, matched as a single word-bounded alternative.
CODING_PATTERNS = ("create.*app", "build.*app", "make.*app")

SCIENCE_KEYWORDS = (
    "chemistry", "physics", "math", "science", "equation", "formula",
    "theorem", "atom", "molecule", "calculate", "solve",
)


def _word_pattern(alternatives: tuple[str, ...]) -> re.Pattern[str]:
    body = "|".join(map(re.escape, alternatives))
    return re.compile(rf"\b(?:{body})\b")


_REGIONAL_WORD_RE = _word_pattern(REGIONAL_WORDS)
_CODING_RE = re.compile(
    rf"\b(?:{'|'.join(map(re.escape, CODING_KEYWORDS))}|{'|'.join(CODING_PATTERNS)})\b"
)
_SCIENCE_RE = _word_pattern(SCIENCE_KEYWORDS)


def is_regional(text: str) -> bool:
    """Regional alphabet character anywhere, or a regional vocabulary word."""
    if any(ch in REGIONAL_CHARS for ch in text):
        return True
    return _REGIONAL_WORD_RE.search(text.lower()) is not None


def is_coding(text: str) -> bool:
    return _CODING_RE.search(text.lower()) is not None


def is_science(text: str) -> bool:
    return _SCIENCE_RE.search(text.lower()) is not None


RULES: tuple[tuple[Category, Callable[[str], bool]], ...] = (
    (Category.REGIONAL, is_regional),
    (Category.CODING, is_coding),
    (Category.SCIENCE_DUAL, is_science),
)


def classify(text: str) -> Category:
    """Map prompt text to a routing category. Total: falls back to GENERAL."""
    for category, matches in RULES:
        if matches(text):
            return category
    return Category.GENERAL
