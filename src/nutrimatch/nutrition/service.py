"""End-to-end meal analysis: parsed items in, standardized nutrition out."""

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from nutrimatch.config import Settings, get_settings
from nutrimatch.errors import FoodNotFoundError
from nutrimatch.foods.index import FoodIndex, FoodIndexLoader
from nutrimatch.foods.matching import FoodMatcher
from nutrimatch.foods.models import Food, FoodMatchResult
from nutrimatch.logging_config import LoggingContext, get_logger
from nutrimatch.normalize.food_input import ParsedFoodItem, parse_bulk_input
from nutrimatch.normalize.units import FoodQuantity, ParsedQuantity, QuantityParser
from nutrimatch.nutrition.aggregator import NutritionAggregator
from nutrimatch.nutrition.models import CalculationItem, NutritionCalculation, clamp_unit
from nutrimatch.nutrition.standardize import LegacyNutrition, StandardizedNutrition, from_calculation
from nutrimatch.nutrition.targets import (
    NutrientDeficiency,
    find_deficiencies,
    pregnancy_specific,
    score_against_targets,
)

logger = get_logger(__name__)

# Ceiling on parse confidence when a food's typical serving stands in for missing quantity text
STANDARD_QUANTITY_CONFIDENCE = 0.7


@dataclass(frozen=True)
class AnalyzedFood:
    """One input item resolved to a reference food."""

    input_name: str
    quantity_text: str | None
    food: Food
    quantity: FoodQuantity
    similarity: float
    confidence: float


@dataclass
class MealAnalysis:
    """Result of analyzing one meal's worth of items."""

    foods: list[AnalyzedFood]
    nutrition: LegacyNutrition
    standardized: StandardizedNutrition
    calculation: NutritionCalculation
    matched_foods: list[FoodMatchResult] = field(default_factory=list)
    not_found: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    target_score: int | None = None
    deficiencies: list[NutrientDeficiency] = field(default_factory=list)


class NutritionService:
    """
    Runs parsed food items through matching, quantity parsing and aggregation.

    The food index is awaited from the loader on each call, so the first
    callers share one dataset load.
    """

    def __init__(
        self,
        loader: FoodIndexLoader,
        settings: Settings | None = None,
        parser: QuantityParser | None = None,
        aggregator: NutritionAggregator | None = None,
    ):
        self.loader = loader
        self.settings = settings or get_settings()
        self.parser = parser or QuantityParser.from_settings(self.settings)
        self.aggregator = aggregator or NutritionAggregator(self.parser)
        self._matcher: FoodMatcher | None = None
        self._matcher_index: FoodIndex | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "NutritionService":
        """Create a service reading the dataset configured in settings."""
        settings = settings or get_settings()
        return cls(FoodIndexLoader.from_settings(settings), settings)

    async def get_matcher(self) -> FoodMatcher:
        """Return a matcher over the current index, rebuilding it after a reload."""
        index = await self.loader.get()
        if self._matcher is None or self._matcher_index is not index:
            self._matcher = FoodMatcher.from_settings(index, self.settings)
            self._matcher_index = index
        return self._matcher

    def parse_item_quantity(self, item: ParsedFoodItem, food: Food) -> ParsedQuantity:
        """
        Parse an item's quantity, falling back to the food's typical serving.

        An item without quantity text uses ``food.standard_quantity`` (e.g. "1杯"
        for rice) when the dataset provides one, with its confidence capped at
        STANDARD_QUANTITY_CONFIDENCE.
        """
        text = item.quantity_text
        if (text is None or not text.strip()) and food.standard_quantity:
            quantity, confidence = self.parser.parse(food.standard_quantity, food.name, food.category)
            logger.debug(f"Using standard quantity {food.standard_quantity!r} for {food.name!r}")
            return ParsedQuantity(quantity, min(confidence, STANDARD_QUANTITY_CONFIDENCE))
        return self.parser.parse(text, food.name, food.category)

    async def analyze(
        self,
        items: Sequence[ParsedFoodItem],
        source: str = "manual",
        targets: Mapping[str, float] | None = None,
    ) -> MealAnalysis:
        """
        Analyze a list of parsed food items.

        Args:
            items: Food names with optional quantity text, in input order.
            source: Where the items came from ("ai", "scraper", "manual"), for logging.
            targets: Optional daily targets by nutrient key to score the meal against.

        Returns:
            MealAnalysis with per-food detail, legacy and standardized nutrition.

        Raises:
            ValueError: If an item has an empty name.
            FoodNotFoundError: If no item matched any food.
        """
        for item in items:
            if not item.name or not item.name.strip():
                raise ValueError("Food item name must not be empty")

        with LoggingContext(request_id=uuid.uuid4().hex, source=source):
            if not items:
                raise FoodNotFoundError([])

            matcher = await self.get_matcher()
            foods: list[AnalyzedFood] = []
            calculation_items: list[CalculationItem] = []
            not_found: list[str] = []
            warnings: list[str] = []

            for item in items:
                match = matcher.match_food(item.name)
                if match is None:
                    not_found.append(item.name)
                    continue

                food = match.matched_food
                quantity, parse_confidence = self.parse_item_quantity(item, food)
                confidence = clamp_unit(match.similarity * parse_confidence * item.confidence)

                if match.similarity < matcher.min_similarity:
                    warnings.append(
                        f"'{item.name}' was matched to '{food.name}' with low confidence "
                        f"(similarity {match.similarity:.2f})"
                    )

                calculation_items.append(
                    CalculationItem(
                        food=food,
                        quantity=quantity,
                        match_confidence=confidence,
                        match_result=match,
                    )
                )
                foods.append(
                    AnalyzedFood(
                        input_name=item.name,
                        quantity_text=item.quantity_text,
                        food=food,
                        quantity=quantity,
                        similarity=match.similarity,
                        confidence=confidence,
                    )
                )

            if not calculation_items:
                logger.warning(f"No food could be matched among {len(items)} item(s)")
                raise FoodNotFoundError(not_found)

            if not_found:
                warnings.append(f"No matching food found for: {', '.join(not_found)}")

            calculation = self.aggregator.calculate(calculation_items, unmatched_names=not_found)
            standardized = from_calculation(calculation, pregnancy=pregnancy_specific(calculation.totals))

            target_score = None
            deficiencies: list[NutrientDeficiency] = []
            if targets:
                target_score = score_against_targets(calculation.totals, targets)
                deficiencies = find_deficiencies(
                    calculation.totals, targets, self.settings.deficiency_threshold
                )

            logger.info(
                f"Analyzed {len(items)} item(s): {len(foods)} matched, "
                f"{len(not_found)} not found, {calculation.total_calories:.0f} kcal"
            )
            return MealAnalysis(
                foods=foods,
                nutrition=LegacyNutrition.from_calculation(calculation),
                standardized=standardized,
                calculation=calculation,
                matched_foods=calculation.match_results,
                not_found=not_found,
                warnings=warnings,
                target_score=target_score,
                deficiencies=deficiencies,
            )

    async def analyze_text(
        self,
        text: str,
        source: str = "manual",
        targets: Mapping[str, float] | None = None,
    ) -> MealAnalysis:
        """Split free text into items and analyze them."""
        return await self.analyze(parse_bulk_input(text), source=source, targets=targets)
