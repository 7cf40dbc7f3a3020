"""Nutrition aggregation, target scoring and output conversion."""

from nutrimatch.nutrition.aggregator import (
    NutritionAggregator,
    calculate_balance_score,
    calculate_completeness,
)
from nutrimatch.nutrition.models import (
    CalculationItem,
    ItemNutrition,
    NutrientTotals,
    NutritionCalculation,
    ReliabilityReport,
)
from nutrimatch.nutrition.service import AnalyzedFood, MealAnalysis, NutritionService
from nutrimatch.nutrition.standardize import (
    NUTRIENT_TABLE,
    LegacyNutrition,
    NamedNutrient,
    StandardizedNutrition,
    from_calculation,
    to_legacy,
    to_per_serving,
    to_standardized,
)
from nutrimatch.nutrition.targets import (
    NutrientDeficiency,
    PregnancySpecific,
    find_deficiencies,
    pregnancy_specific,
    score_against_targets,
)

__all__ = [
    "NUTRIENT_TABLE",
    "AnalyzedFood",
    "CalculationItem",
    "ItemNutrition",
    "LegacyNutrition",
    "MealAnalysis",
    "NamedNutrient",
    "NutrientDeficiency",
    "NutrientTotals",
    "NutritionAggregator",
    "NutritionCalculation",
    "NutritionService",
    "PregnancySpecific",
    "ReliabilityReport",
    "StandardizedNutrition",
    "calculate_balance_score",
    "calculate_completeness",
    "find_deficiencies",
    "from_calculation",
    "pregnancy_specific",
    "score_against_targets",
    "to_legacy",
    "to_per_serving",
    "to_standardized",
]
