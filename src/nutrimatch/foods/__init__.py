"""Reference food dataset, index and name matching."""

from nutrimatch.foods.models import (
    HIGH_CONFIDENCE_THRESHOLD,
    LOW_CONFIDENCE_THRESHOLD,
    MEDIUM_CONFIDENCE_THRESHOLD,
    VERY_LOW_CONFIDENCE_THRESHOLD,
    ConfidenceLevel,
    ExtendedNutrients,
    Food,
    FoodCategory,
    FoodMatchResult,
    Minerals,
    NutrientProfile,
    Vitamins,
    confidence_level,
)
from nutrimatch.foods.cache import LRUCache
from nutrimatch.foods.index import FoodIndex, FoodIndexLoader
from nutrimatch.foods.matching import FoodMatcher

__all__ = [
    "HIGH_CONFIDENCE_THRESHOLD",
    "LOW_CONFIDENCE_THRESHOLD",
    "MEDIUM_CONFIDENCE_THRESHOLD",
    "VERY_LOW_CONFIDENCE_THRESHOLD",
    "ConfidenceLevel",
    "ExtendedNutrients",
    "Food",
    "FoodCategory",
    "FoodIndex",
    "FoodIndexLoader",
    "FoodMatchResult",
    "FoodMatcher",
    "LRUCache",
    "Minerals",
    "NutrientProfile",
    "Vitamins",
    "confidence_level",
]
