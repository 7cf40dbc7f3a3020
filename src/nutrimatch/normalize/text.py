"""Text folding helpers shared by the quantity parser and the food index."""

import re
import unicodedata

_WHITESPACE = re.compile(r"\s+")


def fold_width(text: str) -> str:
    """
    Fold full-width characters to their half-width forms.

    NFKC maps full-width digits, letters and punctuation (including the
    ideographic space and the full-width slash) onto ASCII, and unifies
    half-width katakana with the full-width forms.
    """
    return unicodedata.normalize("NFKC", text)


def normalize_text(text: str | None) -> str:
    """
    Normalize a food name or alias into a lookup key.

    - Unicode compatibility folding (width variants collide)
    - Lowercase
    - Collapse and trim whitespace
    """
    if not text:
        return ""
    folded = fold_width(text).lower()
    return _WHITESPACE.sub(" ", folded).strip()
