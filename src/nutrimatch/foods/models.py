"""Models for reference foods, their nutrient profiles and match results."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# =============================================================================
# Nutrient Keys
# =============================================================================

BASIC_NUTRIENTS = ("calories", "protein", "iron", "folic_acid", "calcium", "vitamin_d")
MACRO_NUTRIENTS = ("fat", "carbohydrate", "dietary_fiber", "sugars", "salt")
MINERAL_NUTRIENTS = ("sodium", "potassium", "magnesium", "phosphorus", "zinc")
VITAMIN_NUTRIENTS = (
    "vitamin_a",
    "vitamin_b1",
    "vitamin_b2",
    "vitamin_b6",
    "vitamin_b12",
    "vitamin_c",
    "vitamin_e",
    "vitamin_k",
)
EXTENDED_NUTRIENTS = MACRO_NUTRIENTS + MINERAL_NUTRIENTS + VITAMIN_NUTRIENTS
ALL_NUTRIENTS = BASIC_NUTRIENTS + EXTENDED_NUTRIENTS

# Dataset spellings accepted for canonical nutrient keys
NUTRIENT_KEY_ALIASES: dict[str, str] = {
    "energy": "calories",
    "fiber": "dietary_fiber",
    "folate": "folic_acid",
    "salt_equivalent": "salt",
}


class FoodCategory(str, Enum):
    """Food category used for unit-to-gram overrides."""

    RICE = "穀類-米"
    GRAINS = "穀類"
    VEGETABLES = "野菜"
    LEAFY_VEGETABLES = "野菜-葉物"
    FRUITS = "果物"
    MEAT = "肉類"
    SEAFOOD = "魚介類"
    EGGS = "卵類"
    DAIRY = "乳類"
    LEGUMES = "豆類"
    MUSHROOMS = "きのこ類"
    SEAWEED = "藻類"
    FATS = "油脂類"
    SEASONINGS = "調味料"
    SWEETS = "菓子類"
    BEVERAGES = "飲料"
    PREPARED = "調理加工食品"
    OTHER = "その他"

    @classmethod
    def parse(cls, value: Any) -> "FoodCategory":
        """Resolve a category label, falling back to its parent group, then OTHER."""
        if isinstance(value, cls):
            return value
        if not value:
            return cls.OTHER
        label = str(value).strip()
        try:
            return cls(label)
        except ValueError:
            pass
        parent = label.split("-", 1)[0]
        try:
            return cls(parent)
        except ValueError:
            return cls.OTHER


# =============================================================================
# Nutrient Profile
# =============================================================================


class _NutrientGroup(BaseModel):
    """Base for optional nutrient groups: None means the source had no value."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    def populated(self) -> dict[str, float]:
        """Return only the fields that carry a value."""
        return {key: value for key, value in self.model_dump().items() if isinstance(value, float)}


class Minerals(_NutrientGroup):
    """Mineral values per 100g (mg)."""

    sodium: float | None = Field(None, ge=0)
    potassium: float | None = Field(None, ge=0)
    magnesium: float | None = Field(None, ge=0)
    phosphorus: float | None = Field(None, ge=0)
    zinc: float | None = Field(None, ge=0)


class Vitamins(_NutrientGroup):
    """Vitamin values per 100g (units follow the standardized nutrient table)."""

    vitamin_a: float | None = Field(None, ge=0)
    vitamin_b1: float | None = Field(None, ge=0)
    vitamin_b2: float | None = Field(None, ge=0)
    vitamin_b6: float | None = Field(None, ge=0)
    vitamin_b12: float | None = Field(None, ge=0)
    vitamin_c: float | None = Field(None, ge=0)
    vitamin_e: float | None = Field(None, ge=0)
    vitamin_k: float | None = Field(None, ge=0)


class ExtendedNutrients(BaseModel):
    """Optional nutrients beyond the basic six."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    fat: float | None = Field(None, ge=0)
    carbohydrate: float | None = Field(None, ge=0)
    dietary_fiber: float | None = Field(None, ge=0)
    sugars: float | None = Field(None, ge=0)
    salt: float | None = Field(None, ge=0)
    minerals: Minerals | None = None
    vitamins: Vitamins | None = None

    def populated(self) -> dict[str, float]:
        """Flatten every populated extended value into one key space."""
        values = {key: getattr(self, key) for key in MACRO_NUTRIENTS if getattr(self, key) is not None}
        if self.minerals is not None:
            values.update(self.minerals.populated())
        if self.vitamins is not None:
            values.update(self.vitamins.populated())
        return values


class NutrientProfile(BaseModel):
    """Nutrient values per 100g. Basic fields are always present."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    iron: float = Field(0.0, ge=0)
    folic_acid: float = Field(0.0, ge=0)
    calcium: float = Field(0.0, ge=0)
    vitamin_d: float = Field(0.0, ge=0)
    extended: ExtendedNutrients | None = None

    @field_validator(*BASIC_NUTRIENTS, mode="before")
    @classmethod
    def missing_basic_is_zero(cls, v: Any) -> Any:
        """Basic nutrients absent from the source count as zero."""
        return 0.0 if v is None else v

    def flat(self) -> dict[str, float]:
        """Return all populated values keyed by canonical nutrient key."""
        values = {key: getattr(self, key) for key in BASIC_NUTRIENTS}
        if self.extended is not None:
            values.update(self.extended.populated())
        return values

    def get(self, key: str) -> float | None:
        """Get a nutrient value; None when an extended value is missing."""
        return self.flat().get(key)

    @classmethod
    def from_flat(cls, values: Mapping[str, float | None]) -> "NutrientProfile":
        """Build a profile from a flat mapping of canonical nutrient keys."""
        return cls.model_validate(nest_nutrients(values))


def nest_nutrients(values: Mapping[str, Any]) -> dict[str, Any]:
    """Arrange flat nutrient keys into the nested profile shape."""
    nested: dict[str, Any] = {key: values.get(key) for key in BASIC_NUTRIENTS}
    extended: dict[str, Any] = {
        key: values[key] for key in MACRO_NUTRIENTS if values.get(key) is not None
    }
    minerals = {key: values[key] for key in MINERAL_NUTRIENTS if values.get(key) is not None}
    vitamins = {key: values[key] for key in VITAMIN_NUTRIENTS if values.get(key) is not None}
    if minerals:
        extended["minerals"] = minerals
    if vitamins:
        extended["vitamins"] = vitamins
    if extended:
        nested["extended"] = extended
    return nested


# =============================================================================
# Food
# =============================================================================


class Food(BaseModel):
    """Reference food with its per-100g nutrient profile."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    aliases: frozenset[str] = frozenset()
    category: FoodCategory = FoodCategory.OTHER
    nutrients: NutrientProfile = NutrientProfile()
    standard_quantity: str | None = None

    @model_validator(mode="before")
    @classmethod
    def lift_flat_nutrients(cls, data: Any) -> Any:
        """Accept dataset records with nutrient fields at the top level."""
        if not isinstance(data, dict) or "nutrients" in data:
            return data

        flat: dict[str, Any] = {}
        for key, value in data.items():
            canonical = NUTRIENT_KEY_ALIASES.get(key, key)
            if canonical in ALL_NUTRIENTS:
                flat[canonical] = value

        legacy_extended = data.get("extended_nutrients")
        if isinstance(legacy_extended, dict):
            for key, value in legacy_extended.items():
                if isinstance(value, dict):
                    flat.update({NUTRIENT_KEY_ALIASES.get(k, k): v for k, v in value.items()})
                else:
                    flat[NUTRIENT_KEY_ALIASES.get(key, key)] = value

        record = {key: value for key, value in data.items() if key not in flat}
        record["nutrients"] = nest_nutrients(flat)
        return record

    @field_validator("id", "name", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        """Trim identifiers and names."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("aliases", mode="before")
    @classmethod
    def coerce_aliases(cls, v: Any) -> Any:
        """Aliases must be an array of strings; blanks are dropped."""
        if v is None:
            return frozenset()
        if isinstance(v, str) or not isinstance(v, (list, tuple, set, frozenset)):
            raise ValueError("aliases must be an array of strings")
        if not all(isinstance(alias, str) for alias in v):
            raise ValueError("aliases must be an array of strings")
        return frozenset(alias.strip() for alias in v if alias.strip())

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, v: Any) -> FoodCategory:
        """Map dataset category labels onto the known categories."""
        return FoodCategory.parse(v)


# =============================================================================
# Matching
# =============================================================================

# Similarity thresholds for confidence tiers
HIGH_CONFIDENCE_THRESHOLD = 0.85
MEDIUM_CONFIDENCE_THRESHOLD = 0.70
LOW_CONFIDENCE_THRESHOLD = 0.50
VERY_LOW_CONFIDENCE_THRESHOLD = 0.35


class ConfidenceLevel(str, Enum):
    """Confidence tier of a match, for reporting."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


def confidence_level(similarity: float) -> ConfidenceLevel | None:
    """Map a similarity score to its tier, or None below the lowest tier."""
    if similarity >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.HIGH
    if similarity >= MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    if similarity >= LOW_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.LOW
    if similarity >= VERY_LOW_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.VERY_LOW
    return None


@dataclass(frozen=True)
class FoodMatchResult:
    """Result of matching a free-text food name to a reference food."""

    input_name: str
    matched_food: Food
    similarity: float
    match_type: str  # "exact", "fuzzy"
    matched_term: str  # The name or alias that scored best

    @property
    def confidence_level(self) -> ConfidenceLevel | None:
        """Confidence tier of this match."""
        return confidence_level(self.similarity)
