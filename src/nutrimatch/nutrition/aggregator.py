"""Scale matched foods by quantity and sum them into a meal total."""

from collections.abc import Iterable, Sequence

from nutrimatch.foods.models import BASIC_NUTRIENTS, FoodMatchResult
from nutrimatch.logging_config import get_logger
from nutrimatch.normalize.units import QuantityParser
from nutrimatch.nutrition.models import (
    CalculationItem,
    ItemNutrition,
    NutrientTotals,
    NutritionCalculation,
    ReliabilityReport,
    clamp_unit,
)

logger = get_logger(__name__)

# Ideal protein : fat : carbohydrate mass ratio
IDEAL_MACRO_RATIO = (2.0, 1.0, 3.0)

# Extended fields counted toward completeness when any item reports them
COMPLETENESS_EXTENDED_FIELDS = (
    "fat",
    "carbohydrate",
    "dietary_fiber",
    "sugars",
    "salt",
    "potassium",
)


def calculate_balance_score(protein: float, fat: float, carbohydrate: float) -> float:
    """
    Score how close the macro split is to the ideal ratio.

    Returns 100 x (1 - mean relative deviation), clamped to [0, 100];
    0 when there is no macro mass at all.
    """
    total = protein + fat + carbohydrate
    if total <= 0:
        return 0.0

    ideal_total = sum(IDEAL_MACRO_RATIO)
    deviations = [
        abs(actual / total - ideal / ideal_total) / (ideal / ideal_total)
        for actual, ideal in zip((protein, fat, carbohydrate), IDEAL_MACRO_RATIO, strict=True)
    ]
    score = 100.0 * (1.0 - sum(deviations) / len(deviations))
    return min(100.0, max(0.0, score))


def calculate_completeness(totals: NutrientTotals) -> float:
    """
    Fraction of expected fields with a strictly positive total.

    The checklist is the six basic nutrients plus each of
    ``COMPLETENESS_EXTENDED_FIELDS`` that some item reported.
    """
    checklist = list(BASIC_NUTRIENTS) + [key for key in COMPLETENESS_EXTENDED_FIELDS if key in totals]
    filled = sum(1 for key in checklist if (totals.get(key) or 0.0) > 0)
    return filled / len(checklist)


class NutritionAggregator:
    """
    Sums scaled per-100g nutrients across items.

    Each call is an independent fold over its input; the aggregator holds
    no per-call state and can be shared.
    """

    def __init__(self, parser: QuantityParser | None = None):
        self.parser = parser or QuantityParser()

    def calculate_item(self, item: CalculationItem) -> ItemNutrition:
        """Convert one item's quantity to grams and scale its nutrients."""
        food = item.food
        estimate = self.parser.convert_to_grams(item.quantity, food.name, food.category)
        if estimate.grams < 0:
            raise ValueError(f"Gram amount must be non-negative, got {estimate.grams}")

        scale = estimate.grams / 100.0
        nutrients = {key: value * scale for key, value in food.nutrients.flat().items()}
        confidence = clamp_unit(item.match_confidence * estimate.confidence)

        logger.debug(
            f"{food.name}: {item.quantity} -> {estimate.grams:g}g "
            f"via {estimate.source} (confidence {confidence:.2f})"
        )
        return ItemNutrition(
            food=food,
            quantity=item.quantity,
            grams=estimate.grams,
            conversion_confidence=estimate.confidence,
            confidence=confidence,
            nutrients=nutrients,
        )

    def calculate(
        self,
        items: Sequence[CalculationItem],
        unmatched_names: Iterable[str] = (),
    ) -> NutritionCalculation:
        """
        Aggregate items into totals and a reliability report.

        Args:
            items: Matched foods with quantities and match confidences.
            unmatched_names: Names that found no food. They add nothing to
                the totals but count as zero-confidence items in the
                overall confidence.

        Returns:
            NutritionCalculation with totals, reliability and per-item detail.
        """
        unmatched = list(unmatched_names)
        totals = NutrientTotals()
        item_results: list[ItemNutrition] = []
        match_results: list[FoodMatchResult] = []

        for item in items:
            result = self.calculate_item(item)
            totals.add(result.nutrients)
            item_results.append(result)
            match_results.append(
                item.match_result
                or FoodMatchResult(
                    input_name=item.food.name,
                    matched_food=item.food,
                    similarity=item.match_confidence,
                    match_type="direct",
                    matched_term=item.food.name,
                )
            )

        confidences = [r.confidence for r in item_results] + [0.0] * len(unmatched)
        confidence = sum(confidences) / len(confidences) if confidences else 0.0

        reliability = ReliabilityReport(
            confidence=clamp_unit(confidence),
            balance_score=calculate_balance_score(
                totals["protein"],
                totals.get("fat") or 0.0,
                totals.get("carbohydrate") or 0.0,
            ),
            completeness=calculate_completeness(totals),
        )

        if unmatched:
            logger.info(f"{len(unmatched)} item(s) had no food match: {', '.join(unmatched)}")
        logger.debug(
            f"Aggregated {len(item_results)} item(s): {totals.calories:.1f} kcal, "
            f"confidence {reliability.confidence:.2f}"
        )

        return NutritionCalculation(
            totals=totals,
            reliability=reliability,
            match_results=match_results,
            items=item_results,
            unmatched_names=unmatched,
        )
