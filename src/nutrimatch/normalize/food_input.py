"""Split free-text food lines into a food name and its quantity text."""

import re
from dataclasses import dataclass

from nutrimatch.normalize.lexicon import AMBIGUOUS_QUANTITIES, KANJI_NUMERALS, UNIT_SYNONYMS
from nutrimatch.normalize.text import fold_width

# Longest spellings first so "大さじ" wins over "大" style prefixes
_UNITS = "|".join(re.escape(unit) for unit in sorted(UNIT_SYNONYMS, key=len, reverse=True))
_NUMBER = r"(?:\d{1,3}(?:,\d{3})+(?!\d)|\d+)(?:\.\d+)?(?:\s*/\s*\d+)?(?:\s*[~〜\-]\s*\d+(?:\.\d+)?)?"
_KANJI = "[" + "".join(KANJI_NUMERALS) + "]"
_AMBIGUOUS = "|".join(re.escape(term) for term in AMBIGUOUS_QUANTITIES)

# A quantity token: "100g", "2個半", "大さじ2", "一杯", "適量"
_QUANTITY = (
    rf"(?:約\s*)?(?:{_NUMBER}\s*(?:{_UNITS})半?|(?:{_UNITS})\s*{_NUMBER}|{_KANJI}(?:{_UNITS})半?"
    rf"|{_AMBIGUOUS})(?:\s*(?:ほど|くらい|ぐらい|程度))?"
)

SPACED_PATTERN = re.compile(rf"^(.+?)\s+({_QUANTITY}|{_NUMBER})$", re.IGNORECASE)
PAREN_PATTERN = re.compile(rf"^(.+?)\(\s*({_QUANTITY}|{_NUMBER})\s*\)$", re.IGNORECASE)
TRAILING_PATTERN = re.compile(rf"^(.+?)({_QUANTITY})$", re.IGNORECASE)
LEADING_PATTERN = re.compile(rf"^({_NUMBER}\s*(?:{_UNITS}))\s*(.+)$", re.IGNORECASE)

# Separators between items in bulk input ("1,000g" keeps its thousands comma)
BULK_SEPARATOR = re.compile(r"\n|、|(?<!\d),|,(?!\d{3}(?!\d))")


@dataclass(frozen=True)
class ParsedFoodItem:
    """A food name with its raw quantity text, as typed by the user."""

    name: str
    quantity_text: str | None = None
    confidence: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")


def parse_food_input(text: str | None) -> ParsedFoodItem:
    """
    Split one input line into food name and quantity text.

    Recognized shapes, in order:
    - "鶏むね肉 100g" (space separated)        -> 0.9
    - "鶏むね肉(100g)" (parenthesized)          -> 0.9
    - "鶏むね肉100g" (quantity suffix)          -> 0.7
    - "100g鶏むね肉" (quantity prefix)          -> 0.7
    - "鶏むね肉" (no quantity)                  -> 0.8

    Empty input yields an empty name with confidence 0.
    """
    if text is None or not text.strip():
        return ParsedFoodItem(name="", quantity_text=None, confidence=0.0)

    line = " ".join(fold_width(text).split())

    for pattern, confidence in ((SPACED_PATTERN, 0.9), (PAREN_PATTERN, 0.9)):
        match = pattern.match(line)
        if match and match.group(1).strip():
            return ParsedFoodItem(match.group(1).strip(), match.group(2).strip(), confidence)

    match = TRAILING_PATTERN.match(line)
    if match and match.group(1).strip():
        return ParsedFoodItem(match.group(1).strip(), match.group(2).strip(), 0.7)

    match = LEADING_PATTERN.match(line)
    if match and match.group(2).strip():
        return ParsedFoodItem(match.group(2).strip(), match.group(1).strip(), 0.7)

    return ParsedFoodItem(name=line, quantity_text=None, confidence=0.8)


def parse_bulk_input(text: str | None) -> list[ParsedFoodItem]:
    """Parse multi-item input separated by newlines, "、" or ","."""
    if text is None or not text.strip():
        return []
    lines = (line.strip() for line in BULK_SEPARATOR.split(fold_width(text)))
    return [parse_food_input(line) for line in lines if line]
