"""Compare aggregated totals against daily nutrient targets."""

from collections.abc import Mapping
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from nutrimatch.nutrition.models import NutrientTotals

# Daily reference amounts used for the pregnancy block
DEFAULT_PREGNANCY_TARGETS: dict[str, float] = {
    "folic_acid": 400.0,  # mcg
    "iron": 20.0,  # mg
    "calcium": 800.0,  # mg
}

DEFICIENCY_THRESHOLD = 0.7


@dataclass(frozen=True)
class NutrientDeficiency:
    """A nutrient whose intake falls short of its target."""

    nutrient: str
    actual: float
    target: float

    @property
    def fulfillment(self) -> float:
        """Fraction of the target reached."""
        return self.actual / self.target

    @property
    def shortfall(self) -> float:
        return max(0.0, self.target - self.actual)


class PregnancySpecific(BaseModel):
    """Percentages of the pregnancy reference amounts reached."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    folate_percentage: float = 0.0
    iron_percentage: float = 0.0
    calcium_percentage: float = 0.0


def _value(totals: NutrientTotals | Mapping[str, float], key: str) -> float:
    return totals.get(key) or 0.0


def _positive_targets(targets: Mapping[str, float]) -> dict[str, float]:
    return {key: target for key, target in targets.items() if target > 0}


def score_against_targets(
    totals: NutrientTotals | Mapping[str, float],
    targets: Mapping[str, float],
) -> int:
    """
    Score intake against targets on a 0-100 scale.

    Each nutrient's fulfilment is capped at 1.0; the score is the rounded
    mean x 100. Targets that are not positive are ignored, and with none
    left the score is 0.
    """
    usable = _positive_targets(targets)
    if not usable:
        return 0
    fulfilment = [min(1.0, _value(totals, key) / target) for key, target in usable.items()]
    return round(100 * sum(fulfilment) / len(fulfilment))


def find_deficiencies(
    totals: NutrientTotals | Mapping[str, float],
    targets: Mapping[str, float],
    threshold: float = DEFICIENCY_THRESHOLD,
) -> list[NutrientDeficiency]:
    """List nutrients below ``threshold`` of their target, worst first."""
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"threshold must be within [0, 1], got {threshold}")

    deficiencies = [
        NutrientDeficiency(nutrient=key, actual=_value(totals, key), target=target)
        for key, target in _positive_targets(targets).items()
        if _value(totals, key) / target < threshold
    ]
    deficiencies.sort(key=lambda d: (d.fulfillment, d.nutrient))
    return deficiencies


def pregnancy_specific(
    totals: NutrientTotals | Mapping[str, float],
    targets: Mapping[str, float] | None = None,
) -> PregnancySpecific:
    """Build the folate / iron / calcium percentage block."""
    reference = {**DEFAULT_PREGNANCY_TARGETS, **(targets or {})}

    def percentage(key: str) -> float:
        target = reference.get(key, 0.0)
        return _value(totals, key) / target * 100 if target > 0 else 0.0

    return PregnancySpecific(
        folate_percentage=percentage("folic_acid"),
        iron_percentage=percentage("iron"),
        calcium_percentage=percentage("calcium"),
    )
