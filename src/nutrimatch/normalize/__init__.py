"""Normalize free-text food and quantity input."""

# text has no package imports and must load first; foods.index depends on it
from nutrimatch.normalize.text import fold_width, normalize_text
from nutrimatch.normalize.lexicon import (
    STANDARD_AMOUNT_UNIT,
    UNIT_SYNONYMS,
    canonical_unit,
    is_known_unit,
)
from nutrimatch.normalize.units import (
    FoodQuantity,
    GramEstimate,
    ParsedQuantity,
    QuantityParser,
    convert_to_grams,
    parse_number,
    parse_quantity,
)
from nutrimatch.normalize.food_input import ParsedFoodItem, parse_bulk_input, parse_food_input

__all__ = [
    "STANDARD_AMOUNT_UNIT",
    "UNIT_SYNONYMS",
    "FoodQuantity",
    "GramEstimate",
    "ParsedFoodItem",
    "ParsedQuantity",
    "QuantityParser",
    "canonical_unit",
    "convert_to_grams",
    "fold_width",
    "is_known_unit",
    "normalize_text",
    "parse_bulk_input",
    "parse_food_input",
    "parse_number",
    "parse_quantity",
]
