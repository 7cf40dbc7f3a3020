"""Quantity parsing and gram conversion."""

import math
import re
from dataclasses import dataclass
from typing import NamedTuple

from nutrimatch.foods.models import FoodCategory
from nutrimatch.logging_config import get_logger
from nutrimatch.normalize.lexicon import (
    AMBIGUOUS_QUANTITIES,
    CATEGORY_FOOD_UNIT_GRAMS,
    CATEGORY_UNIT_GRAMS,
    DEFAULT_SERVING_GRAMS,
    FOOD_UNIT_GRAMS,
    KANJI_NUMERALS,
    PHYSICAL_UNIT_GRAMS,
    STANDARD_AMOUNT_CONFIDENCE,
    STANDARD_AMOUNT_GRAMS,
    STANDARD_AMOUNT_UNIT,
    UNIT_SYNONYMS,
    UNIT_TO_GRAMS,
    UNKNOWN_UNIT_CONFIDENCE,
    canonical_unit,
    is_known_unit,
)
from nutrimatch.normalize.text import fold_width

logger = get_logger(__name__)


# =============================================================================
# Patterns
# =============================================================================

# Integer part may carry thousands separators ("1,000")
_INT = r"(?:\d{1,3}(?:,\d{3})+(?!\d)|\d+)"
_NUM = rf"{_INT}(?:\.\d+)?(?:\s*/\s*\d+(?:\.\d+)?)?"
_MIXED = r"\d+(?:\s+|\s*と\s*)\d+\s*/\s*\d+"
_RANGE = rf"{_NUM}\s*[~〜\-]\s*{_NUM}"
_NUMBER = rf"(?:{_MIXED}|{_RANGE}|{_NUM})"
_KANJI = "[" + "".join(KANJI_NUMERALS) + "]"
_UNIT = r"[^\d\s/.~〜\-]+?"

# "1本(150g)", "(約200g)", "(0.2kg)"
PAREN_WEIGHT_PATTERN = re.compile(
    rf"\(\s*(?:約\s*)?({_INT}(?:\.\d+)?)\s*(g|グラム|kg|キログラム)\s*\)",
    re.IGNORECASE,
)
_PARENTHETICAL = re.compile(r"\([^)]*\)|\[[^\]]*\]|【[^】]*】")
_APPROX_PREFIX = re.compile(r"^(?:約|およそ)\s*")
_APPROX_SUFFIX = re.compile(r"\s*(?:ほど|くらい|ぐらい|程度|位)$")
_THOUSANDS_SEPARATOR = re.compile(r"(?<=\d),(?=\d{3}(?!\d))")

NUMBER_UNIT_PATTERN = re.compile(rf"^({_NUMBER})\s*({_UNIT})(半)?$")
UNIT_NUMBER_PATTERN = re.compile(rf"^({_UNIT})\s*({_NUMBER})$")
COMPLEX_KANJI_PATTERN = re.compile(r"^([一二三四五六七八九十百千万]{2,}|[百千万])(\D+?)$")
KANJI_UNIT_PATTERN = re.compile(rf"^({_KANJI})({_UNIT})(半)?$")
UNIT_KANJI_PATTERN = re.compile(rf"^({_UNIT})({_KANJI})$")
BARE_NUMBER_PATTERN = re.compile(rf"^({_NUMBER}|{_KANJI})$")

# Parse confidences
PAREN_WEIGHT_CONFIDENCE = 1.0
KNOWN_UNIT_CONFIDENCE = 0.9
KANJI_UNIT_CONFIDENCE = 0.85
BARE_UNIT_CONFIDENCE = 0.75
BARE_NUMBER_CONFIDENCE = 0.7
UNKNOWN_UNIT_PARSE_CONFIDENCE = 0.65
COMPLEX_KANJI_CONFIDENCE = 0.6
DEFAULT_PARSE_CONFIDENCE = 0.5

# Units that are precise enough to raise parse confidence
PRECISE_UNITS = {"合"}


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True)
class FoodQuantity:
    """A parsed quantity: a value and its canonical unit."""

    value: float
    unit: str

    def __post_init__(self) -> None:
        if math.isnan(self.value) or self.value < 0:
            raise ValueError(f"Quantity value must be a non-negative number, got {self.value!r}")
        if not self.unit:
            raise ValueError("Quantity unit must not be empty")

    def __str__(self) -> str:
        return f"{self.value:g}{self.unit}"

    @classmethod
    def standard_amount(cls, value: float = 1.0) -> "FoodQuantity":
        """The sentinel 'unspecified amount' quantity."""
        return cls(value=value, unit=STANDARD_AMOUNT_UNIT)


class ParsedQuantity(NamedTuple):
    """Result of parsing quantity text."""

    quantity: FoodQuantity
    confidence: float


class GramEstimate(NamedTuple):
    """Result of converting a quantity to grams."""

    grams: float
    confidence: float
    source: str  # which conversion tier produced the value


# =============================================================================
# Number Parsing
# =============================================================================


def parse_number(text: str) -> float | None:
    """
    Parse a numeric string into a float.

    Handles formats like:
    - "2", "1.5", "1,000"
    - "3/4"
    - "1 1/2", "1と1/2" (mixed fractions)
    - "2-3", "2〜3" (range, returns average)
    - single kanji numerals ("三", "半")

    Returns None when the text is not a number this parser understands.
    """
    text = text.strip()
    if not text:
        return None

    text = _THOUSANDS_SEPARATOR.sub("", text)

    if text in KANJI_NUMERALS:
        return KANJI_NUMERALS[text]

    range_match = re.fullmatch(rf"({_NUM})\s*[~〜\-]\s*({_NUM})", text)
    if range_match:
        low = parse_number(range_match.group(1))
        high = parse_number(range_match.group(2))
        if low is None or high is None:
            return None
        return (low + high) / 2

    mixed_match = re.fullmatch(r"(\d+)(?:\s+|\s*と\s*)(\d+)\s*/\s*(\d+)", text)
    if mixed_match:
        whole, num, denom = (int(g) for g in mixed_match.groups())
        if denom == 0:
            return None
        return whole + num / denom

    frac_match = re.fullmatch(r"(\d+(?:\.\d+)?)\s*/\s*(\d+(?:\.\d+)?)", text)
    if frac_match:
        denom = float(frac_match.group(2))
        if denom == 0:
            return None
        return float(frac_match.group(1)) / denom

    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return float(text)

    return None


def _clean_quantity_text(text: str) -> str:
    """Drop parenthetical notes and approximation markers."""
    cleaned = _PARENTHETICAL.sub(" ", text)
    cleaned = " ".join(cleaned.split())
    cleaned = _APPROX_PREFIX.sub("", cleaned)
    cleaned = _APPROX_SUFFIX.sub("", cleaned)
    return cleaned.strip()


# =============================================================================
# Parser
# =============================================================================


class QuantityParser:
    """
    Converts free-text quantities into (value, unit) pairs and grams.

    Parsing never raises for odd input: anything it cannot read degrades
    to the standard-amount default with a lower confidence.
    """

    def __init__(
        self,
        standard_amount_grams: float = STANDARD_AMOUNT_GRAMS,
        default_serving_grams: float = DEFAULT_SERVING_GRAMS,
    ):
        if standard_amount_grams <= 0 or default_serving_grams <= 0:
            raise ValueError("Fallback gram values must be positive")
        self.standard_amount_grams = standard_amount_grams
        self.default_serving_grams = default_serving_grams

    @classmethod
    def from_settings(cls, settings) -> "QuantityParser":
        """Build a parser from engine settings."""
        return cls(
            standard_amount_grams=settings.standard_amount_grams,
            default_serving_grams=settings.default_serving_grams,
        )

    def parse(
        self,
        text: str | None,
        food_name: str | None = None,
        category: FoodCategory | str | None = None,
    ) -> ParsedQuantity:
        """
        Parse quantity text.

        Args:
            text: Quantity text (e.g. "100g", "大さじ2", "3個", "1本(150g)").
            food_name: Food name, used for log context.
            category: Food category, used for log context.

        Returns:
            ParsedQuantity of the canonical quantity and a confidence in [0, 1].
        """
        default = ParsedQuantity(FoodQuantity.standard_amount(), DEFAULT_PARSE_CONFIDENCE)

        if text is None or not text.strip():
            return default

        folded = fold_width(text).strip()

        # Parenthetical weight is authoritative
        paren = PAREN_WEIGHT_PATTERN.search(folded)
        if paren:
            value = float(_THOUSANDS_SEPARATOR.sub("", paren.group(1)))
            if canonical_unit(paren.group(2)) == "kg":
                value *= 1000
            return ParsedQuantity(FoodQuantity(value, "g"), PAREN_WEIGHT_CONFIDENCE)

        cleaned = _clean_quantity_text(folded)
        if not cleaned:
            logger.warning(f"Failed to parse quantity {text!r} for {food_name!r}; using default")
            return default

        parsed = self._parse_number_and_unit(cleaned, text, food_name)
        if parsed is not None:
            return parsed

        for term, (grams, confidence) in AMBIGUOUS_QUANTITIES.items():
            if term in cleaned:
                logger.debug(f"Ambiguous quantity {term!r} for {food_name!r} -> {grams}g")
                return ParsedQuantity(FoodQuantity(grams, "g"), confidence)

        bare = BARE_NUMBER_PATTERN.match(cleaned)
        if bare:
            value = parse_number(bare.group(1))
            if value is not None:
                return ParsedQuantity(FoodQuantity.standard_amount(value), BARE_NUMBER_CONFIDENCE)

        if cleaned.lower() in UNIT_SYNONYMS:
            unit = canonical_unit(cleaned)
            return ParsedQuantity(FoodQuantity(1.0, unit), BARE_UNIT_CONFIDENCE)

        logger.warning(
            f"Failed to parse quantity {text!r} for {food_name!r} "
            f"(category={category}); using default"
        )
        return default

    def _parse_number_and_unit(
        self,
        cleaned: str,
        original: str,
        food_name: str | None,
    ) -> ParsedQuantity | None:
        """Try the number/unit pattern family in order."""
        match = NUMBER_UNIT_PATTERN.match(cleaned)
        if match:
            value = parse_number(match.group(1))
            if value is not None:
                if match.group(3):
                    value += 0.5
                return self._with_unit(value, match.group(2), KNOWN_UNIT_CONFIDENCE)

        match = UNIT_NUMBER_PATTERN.match(cleaned)
        if match:
            value = parse_number(match.group(2))
            if value is not None:
                return self._with_unit(value, match.group(1), KNOWN_UNIT_CONFIDENCE)

        match = COMPLEX_KANJI_PATTERN.match(cleaned)
        if match:
            logger.warning(
                f"Complex kanji numeral in {original!r} for {food_name!r} is not supported; "
                "assuming 1"
            )
            unit = canonical_unit(match.group(2))
            return ParsedQuantity(FoodQuantity(1.0, unit), COMPLEX_KANJI_CONFIDENCE)

        match = KANJI_UNIT_PATTERN.match(cleaned)
        if match:
            value = KANJI_NUMERALS[match.group(1)]
            if match.group(3):
                value += 0.5
            return self._with_unit(value, match.group(2), KANJI_UNIT_CONFIDENCE)

        match = UNIT_KANJI_PATTERN.match(cleaned)
        if match and canonical_unit(match.group(1)) in UNIT_SYNONYMS.values():
            return self._with_unit(
                KANJI_NUMERALS[match.group(2)], match.group(1), KANJI_UNIT_CONFIDENCE
            )

        return None

    def _with_unit(self, value: float, unit_text: str, confidence: float) -> ParsedQuantity:
        unit = canonical_unit(unit_text)
        if unit in PRECISE_UNITS:
            confidence = max(confidence, 0.95)
        elif not is_known_unit(unit):
            logger.info(f"Unknown unit {unit_text!r}; keeping it with reduced confidence")
            confidence = UNKNOWN_UNIT_PARSE_CONFIDENCE
        return ParsedQuantity(FoodQuantity(value, unit), confidence)

    def convert_to_grams(
        self,
        quantity: FoodQuantity,
        food_name: str | None = None,
        category: FoodCategory | str | None = None,
    ) -> GramEstimate:
        """
        Convert a quantity to grams.

        Resolution order, first hit wins:
        1. Physical units (g, kg, ml, cc, ...)
        2. Category + unit + specific food name (e.g. one apple)
        3. Category + unit (e.g. a bowl of rice)
        4. Named food + unit (e.g. a piece of curry roux)
        5. Generic unit table
        6. The standard-amount sentinel
        7. Anything else: one default serving per unit, lowest confidence
        """
        value, unit = quantity.value, quantity.unit
        resolved_category = FoodCategory.parse(category) if category else None

        if unit in PHYSICAL_UNIT_GRAMS:
            factor, confidence = PHYSICAL_UNIT_GRAMS[unit]
            return GramEstimate(value * factor, confidence, "physical")

        if resolved_category is not None and food_name:
            specific = CATEGORY_FOOD_UNIT_GRAMS.get(resolved_category, {}).get(unit, {})
            for specific_food, grams in specific.items():
                if specific_food in food_name:
                    return GramEstimate(value * grams, 0.95, "category_food")

        if resolved_category is not None:
            grams = CATEGORY_UNIT_GRAMS.get(resolved_category, {}).get(unit)
            if grams is not None:
                return GramEstimate(value * grams, 0.9, "category")

        if food_name:
            for keyword, units in FOOD_UNIT_GRAMS.items():
                if keyword in food_name and unit in units:
                    return GramEstimate(value * units[unit], 0.9, "food")

        if unit in UNIT_TO_GRAMS:
            grams, confidence = UNIT_TO_GRAMS[unit]
            return GramEstimate(value * grams, confidence, "unit")

        if unit == STANDARD_AMOUNT_UNIT:
            logger.info(
                f"Unit is '{STANDARD_AMOUNT_UNIT}' for {food_name!r}; "
                f"using {self.standard_amount_grams:g}g"
            )
            return GramEstimate(
                value * self.standard_amount_grams, STANDARD_AMOUNT_CONFIDENCE, "standard"
            )

        logger.warning(
            f"Unknown unit {unit!r} for {food_name!r}; "
            f"assuming {self.default_serving_grams:g}g per unit"
        )
        return GramEstimate(value * self.default_serving_grams, UNKNOWN_UNIT_CONFIDENCE, "fallback")

    def parse_to_grams(
        self,
        text: str | None,
        food_name: str | None = None,
        category: FoodCategory | str | None = None,
    ) -> GramEstimate:
        """Parse quantity text and convert it to grams in one step."""
        quantity, parse_confidence = self.parse(text, food_name, category)
        estimate = self.convert_to_grams(quantity, food_name, category)
        return estimate._replace(confidence=min(parse_confidence, estimate.confidence))


_default_parser = QuantityParser()


def parse_quantity(
    text: str | None,
    food_name: str | None = None,
    category: FoodCategory | str | None = None,
) -> ParsedQuantity:
    """Parse quantity text with the default parser."""
    return _default_parser.parse(text, food_name, category)


def convert_to_grams(
    quantity: FoodQuantity,
    food_name: str | None = None,
    category: FoodCategory | str | None = None,
) -> GramEstimate:
    """Convert a quantity to grams with the default parser."""
    return _default_parser.convert_to_grams(quantity, food_name, category)
