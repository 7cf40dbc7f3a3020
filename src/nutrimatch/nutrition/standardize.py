"""Conversion between legacy flat nutrition records and standardized nutrient lists."""

from collections.abc import Mapping, Sequence
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from nutrimatch.foods.models import (
    ALL_NUTRIENTS,
    BASIC_NUTRIENTS,
    MACRO_NUTRIENTS,
    MINERAL_NUTRIENTS,
    NUTRIENT_KEY_ALIASES,
    VITAMIN_NUTRIENTS,
    nest_nutrients,
)
from nutrimatch.logging_config import get_logger
from nutrimatch.normalize.text import normalize_text
from nutrimatch.nutrition.models import NutrientTotals, NutritionCalculation
from nutrimatch.nutrition.targets import PregnancySpecific

logger = get_logger(__name__)

DEFAULT_CONFIDENCE_SCORE = 0.5
VITAMIN_KEYWORDS = ("ビタミン", "vitamin")


# =============================================================================
# Nutrient Table
# =============================================================================


class NutrientMapping(NamedTuple):
    """One row of the display name <-> key <-> unit table."""

    name: str
    key: str
    unit: str


NUTRIENT_TABLE: tuple[NutrientMapping, ...] = (
    NutrientMapping("エネルギー", "calories", "kcal"),
    NutrientMapping("たんぱく質", "protein", "g"),
    NutrientMapping("鉄", "iron", "mg"),
    NutrientMapping("葉酸", "folic_acid", "mcg"),
    NutrientMapping("カルシウム", "calcium", "mg"),
    NutrientMapping("ビタミンD", "vitamin_d", "mcg"),
    NutrientMapping("脂質", "fat", "g"),
    NutrientMapping("炭水化物", "carbohydrate", "g"),
    NutrientMapping("食物繊維", "dietary_fiber", "g"),
    NutrientMapping("糖質", "sugars", "g"),
    NutrientMapping("食塩相当量", "salt", "g"),
    NutrientMapping("ナトリウム", "sodium", "mg"),
    NutrientMapping("カリウム", "potassium", "mg"),
    NutrientMapping("マグネシウム", "magnesium", "mg"),
    NutrientMapping("リン", "phosphorus", "mg"),
    NutrientMapping("亜鉛", "zinc", "mg"),
    NutrientMapping("ビタミンA", "vitamin_a", "mcg"),
    NutrientMapping("ビタミンB1", "vitamin_b1", "mg"),
    NutrientMapping("ビタミンB2", "vitamin_b2", "mg"),
    NutrientMapping("ビタミンB6", "vitamin_b6", "mg"),
    NutrientMapping("ビタミンB12", "vitamin_b12", "mcg"),
    NutrientMapping("ビタミンC", "vitamin_c", "mg"),
    NutrientMapping("ビタミンE", "vitamin_e", "mg"),
    NutrientMapping("ビタミンK", "vitamin_k", "mcg"),
)

# Other spellings seen in standardized input
NUTRIENT_NAME_ALIASES: dict[str, str] = {
    "カロリー": "calories",
    "タンパク質": "protein",
    "蛋白質": "protein",
    "鉄分": "iron",
    "calories": "calories",
    "energy": "calories",
    "protein": "protein",
    "iron": "iron",
    "folate": "folic_acid",
    "folic acid": "folic_acid",
    "calcium": "calcium",
    "vitamin d": "vitamin_d",
    "fat": "fat",
    "carbohydrate": "carbohydrate",
    "fiber": "dietary_fiber",
    "dietary fiber": "dietary_fiber",
    "sugars": "sugars",
    "salt": "salt",
}

_KEY_BY_NAME: dict[str, str] = {
    **{normalize_text(row.name): row.key for row in NUTRIENT_TABLE},
    **{normalize_text(name): key for name, key in NUTRIENT_NAME_ALIASES.items()},
}
_ROW_BY_KEY: dict[str, NutrientMapping] = {row.key: row for row in NUTRIENT_TABLE}


def nutrient_key(name: str) -> str | None:
    """Resolve a nutrient display name to its canonical key."""
    return _KEY_BY_NAME.get(normalize_text(name))


# =============================================================================
# Legacy Shape
# =============================================================================


class LegacyExtendedNutrients(BaseModel):
    """Optional nested block of the legacy record."""

    model_config = ConfigDict(extra="ignore")

    fat: float | None = None
    carbohydrate: float | None = None
    dietary_fiber: float | None = None
    sugars: float | None = None
    salt: float | None = None
    minerals: dict[str, float] = Field(default_factory=dict)
    vitamins: dict[str, float] = Field(default_factory=dict)
    other: dict[str, float] = Field(default_factory=dict)


class LegacyNutrition(BaseModel):
    """Flat nutrition record with the six basic nutrients at the top level."""

    model_config = ConfigDict(extra="ignore")

    calories: float = 0.0
    protein: float = 0.0
    iron: float = 0.0
    folic_acid: float = 0.0
    calcium: float = 0.0
    vitamin_d: float = 0.0
    confidence_score: float = Field(DEFAULT_CONFIDENCE_SCORE, ge=0.0, le=1.0)
    extended_nutrients: LegacyExtendedNutrients | None = None

    def flat(self) -> dict[str, float]:
        """Values keyed by canonical nutrient key (named minerals and vitamins only)."""
        values = {key: getattr(self, key) for key in BASIC_NUTRIENTS}
        extended = self.extended_nutrients
        if extended is not None:
            values.update(
                {key: getattr(extended, key) for key in MACRO_NUTRIENTS if getattr(extended, key) is not None}
            )
            values.update({k: v for k, v in extended.minerals.items() if k in MINERAL_NUTRIENTS})
            values.update({k: v for k, v in extended.vitamins.items() if k in VITAMIN_NUTRIENTS})
        return values

    @classmethod
    def from_values(
        cls,
        values: Mapping[str, float],
        confidence_score: float = DEFAULT_CONFIDENCE_SCORE,
    ) -> "LegacyNutrition":
        """Build a legacy record from canonical nutrient keys."""
        nested = nest_nutrients(values)
        extended = nested.pop("extended", None)
        if extended is not None:
            extended = LegacyExtendedNutrients(
                **{key: extended.get(key) for key in MACRO_NUTRIENTS},
                minerals=extended.get("minerals", {}),
                vitamins=extended.get("vitamins", {}),
            )
        basic = {key: value or 0.0 for key, value in nested.items()}
        return cls(**basic, confidence_score=confidence_score, extended_nutrients=extended)

    @classmethod
    def from_calculation(cls, calculation: NutritionCalculation) -> "LegacyNutrition":
        return cls.from_values(
            calculation.totals.as_dict(),
            confidence_score=calculation.reliability.confidence,
        )


# =============================================================================
# Standardized Shape
# =============================================================================


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NamedNutrient(_CamelModel):
    name: str
    value: float
    unit: str
    percent_daily_value: float | None = None


class ServingSize(_CamelModel):
    value: float = 100.0
    unit: str = "g"


class FoodItemNutrition(_CamelModel):
    """Nutrition of one food for the amount eaten."""

    calories: float
    nutrients: list[NamedNutrient]
    serving_size: ServingSize = ServingSize()


class StandardizedFoodItem(_CamelModel):
    id: str
    name: str
    amount: float
    unit: str
    nutrition: FoodItemNutrition
    confidence: float | None = None


class Reliability(_CamelModel):
    confidence: float = Field(ge=0.0, le=1.0)
    balance_score: float | None = None
    completeness: float | None = None


class StandardizedNutrition(_CamelModel):
    """Meal nutrition as a list of named nutrients."""

    total_calories: float
    total_nutrients: list[NamedNutrient]
    food_items: list[StandardizedFoodItem] = Field(default_factory=list)
    reliability: Reliability | None = None
    pregnancy_specific: PregnancySpecific | None = None

    def nutrient(self, name: str) -> NamedNutrient | None:
        """Find a nutrient by display name or any known spelling."""
        key = nutrient_key(name)
        for entry in self.total_nutrients:
            if entry.name == name or (key is not None and nutrient_key(entry.name) == key):
                return entry
        return None


# =============================================================================
# Conversions
# =============================================================================


def _named_nutrients(values: Mapping[str, float], keys: Sequence[str] | None = None) -> list[NamedNutrient]:
    rows = NUTRIENT_TABLE if keys is None else [_ROW_BY_KEY[key] for key in keys if key in _ROW_BY_KEY]
    return [NamedNutrient(name=row.name, value=values.get(row.key) or 0.0, unit=row.unit) for row in rows]


def _source_values(source: LegacyNutrition | NutrientTotals | Mapping[str, Any]) -> dict[str, float]:
    if isinstance(source, LegacyNutrition):
        return source.flat()
    if isinstance(source, NutrientTotals):
        return source.as_dict()
    # Plain mappings may be legacy-shaped or keyed by nutrient keys and their aliases
    values = LegacyNutrition.model_validate(source).flat()
    for key, value in source.items():
        key = NUTRIENT_KEY_ALIASES.get(key, key)
        if key in ALL_NUTRIENTS and value is not None:
            values[key] = value
    return values


def to_standardized(
    source: LegacyNutrition | NutrientTotals | Mapping[str, Any],
    food_items: Sequence[StandardizedFoodItem] = (),
    reliability: Reliability | None = None,
    pregnancy: PregnancySpecific | None = None,
) -> StandardizedNutrition:
    """
    Convert a flat record into the standardized shape.

    Every nutrient in ``NUTRIENT_TABLE`` is emitted, zero when the source
    has no value, so consumers always see the same nutrient set.
    """
    values = _source_values(source)
    if reliability is None and isinstance(source, LegacyNutrition):
        reliability = Reliability(confidence=source.confidence_score)

    return StandardizedNutrition(
        total_calories=values.get("calories", 0.0),
        total_nutrients=_named_nutrients(values),
        food_items=list(food_items),
        reliability=reliability,
        pregnancy_specific=pregnancy,
    )


def to_legacy(standardized: StandardizedNutrition) -> LegacyNutrition:
    """
    Convert a standardized record into the legacy flat shape.

    Values are passed through as-is; no unit conversion happens. Names
    that are not in the table are kept under ``vitamins`` when they look
    like a vitamin, otherwise under ``other``.
    """
    basic: dict[str, float] = {"calories": standardized.total_calories}
    extended = LegacyExtendedNutrients()
    has_extended = False

    for entry in standardized.total_nutrients:
        key = nutrient_key(entry.name)
        if key == "calories":
            continue
        if key in BASIC_NUTRIENTS:
            basic[key] = entry.value
            continue

        has_extended = True
        if key in MACRO_NUTRIENTS:
            setattr(extended, key, entry.value)
        elif key in MINERAL_NUTRIENTS:
            extended.minerals[key] = entry.value
        elif key in VITAMIN_NUTRIENTS:
            extended.vitamins[key] = entry.value
        elif any(keyword in entry.name.lower() for keyword in VITAMIN_KEYWORDS):
            extended.vitamins[entry.name] = entry.value
        else:
            logger.debug(f"Unrecognized nutrient {entry.name!r} kept under 'other'")
            extended.other[entry.name] = entry.value

    confidence = (
        standardized.reliability.confidence
        if standardized.reliability is not None
        else DEFAULT_CONFIDENCE_SCORE
    )
    return LegacyNutrition(
        **basic,
        confidence_score=confidence,
        extended_nutrients=extended if has_extended else None,
    )


def to_per_serving(standardized: StandardizedNutrition, servings: float) -> StandardizedNutrition | None:
    """
    Divide calories and every nutrient value by ``servings``.

    Returns None when ``servings`` is not positive.
    """
    if not servings > 0:
        return None
    return standardized.model_copy(
        update={
            "total_calories": standardized.total_calories / servings,
            "total_nutrients": [
                entry.model_copy(update={"value": entry.value / servings})
                for entry in standardized.total_nutrients
            ],
        }
    )


def from_calculation(
    calculation: NutritionCalculation,
    pregnancy: PregnancySpecific | None = None,
) -> StandardizedNutrition:
    """Build the standardized shape, with per-food items, from an aggregation."""
    food_items = [
        StandardizedFoodItem(
            id=item.food.id,
            name=item.food.name,
            amount=item.quantity.value,
            unit=item.quantity.unit,
            nutrition=FoodItemNutrition(
                calories=item.calories,
                nutrients=_named_nutrients(item.nutrients, [k for k in item.nutrients if k != "calories"]),
                serving_size=ServingSize(value=item.grams, unit="g"),
            ),
            confidence=item.confidence,
        )
        for item in calculation.items
    ]
    report = calculation.reliability
    return to_standardized(
        calculation.totals,
        food_items=food_items,
        reliability=Reliability(
            confidence=report.confidence,
            balance_score=report.balance_score,
            completeness=report.completeness,
        ),
        pregnancy=pregnancy,
    )
