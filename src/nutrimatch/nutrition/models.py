"""Data structures produced and consumed by nutrition aggregation."""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from nutrimatch.foods.models import (
    ALL_NUTRIENTS,
    BASIC_NUTRIENTS,
    Food,
    FoodMatchResult,
    NutrientProfile,
)
from nutrimatch.normalize.units import FoodQuantity


def clamp_unit(value: float) -> float:
    """Clamp a confidence-like value into [0, 1]."""
    return min(1.0, max(0.0, value))


class NutrientTotals:
    """
    Running nutrient sums for one aggregation.

    Basic nutrients always have a value (starting at 0). Extended nutrients
    only appear once some item contributed a value for them, so "missing"
    and "zero" stay distinguishable.
    """

    def __init__(self, values: Mapping[str, float] | None = None):
        self._values: dict[str, float] = {key: 0.0 for key in BASIC_NUTRIENTS}
        if values:
            for key, value in values.items():
                self._check_key(key)
                self._values[key] = value

    @staticmethod
    def _check_key(key: str) -> None:
        if key not in ALL_NUTRIENTS:
            raise ValueError(f"Unknown nutrient key: {key!r}")

    def add(self, nutrients: Mapping[str, float]) -> None:
        """Add each value into its running sum."""
        for key, value in nutrients.items():
            self._check_key(key)
            self._values[key] = self._values.get(key, 0.0) + value

    def get(self, key: str, default: float | None = None) -> float | None:
        return self._values.get(key, default)

    def __getitem__(self, key: str) -> float:
        return self._values[key]

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NutrientTotals):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"NutrientTotals({self._values!r})"

    @property
    def calories(self) -> float:
        return self._values["calories"]

    def as_dict(self) -> dict[str, float]:
        """Copy of all sums keyed by canonical nutrient key."""
        return dict(self._values)

    def to_profile(self) -> NutrientProfile:
        """Express the totals as a nutrient profile."""
        return NutrientProfile.from_flat(self._values)


@dataclass(frozen=True)
class ReliabilityReport:
    """How trustworthy an aggregated total is."""

    confidence: float  # [0, 1]
    balance_score: float  # [0, 100]
    completeness: float  # [0, 1]

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if not 0.0 <= self.balance_score <= 100.0:
            raise ValueError(f"balance_score must be within [0, 100], got {self.balance_score}")
        if not 0.0 <= self.completeness <= 1.0:
            raise ValueError(f"completeness must be within [0, 1], got {self.completeness}")


@dataclass(frozen=True)
class CalculationItem:
    """One matched food and its quantity, ready to aggregate."""

    food: Food
    quantity: FoodQuantity
    match_confidence: float = 1.0
    match_result: FoodMatchResult | None = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.match_confidence <= 1.0:
            raise ValueError(
                f"match_confidence must be within [0, 1], got {self.match_confidence}"
            )


@dataclass(frozen=True)
class ItemNutrition:
    """Scaled nutrients contributed by one item."""

    food: Food
    quantity: FoodQuantity
    grams: float
    conversion_confidence: float
    confidence: float
    nutrients: dict[str, float] = field(default_factory=dict)

    @property
    def calories(self) -> float:
        return self.nutrients.get("calories", 0.0)


@dataclass
class NutritionCalculation:
    """Result of aggregating a list of items."""

    totals: NutrientTotals
    reliability: ReliabilityReport
    match_results: list[FoodMatchResult]
    items: list[ItemNutrition] = field(default_factory=list)
    unmatched_names: list[str] = field(default_factory=list)

    @property
    def total_calories(self) -> float:
        return self.totals.calories
