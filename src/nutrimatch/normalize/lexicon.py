"""Unit lexicon: synonym, gram-equivalent and override tables.

All tables are keyed by canonical unit. Unit text is width-folded (NFKC)
and lower-cased before it is looked up in ``UNIT_SYNONYMS``, so the
full-width spellings (``ｇ``, ``ｍｌ``) collide with their half-width keys.
"""

from nutrimatch.foods.models import FoodCategory

# Sentinel unit for "unspecified / standard amount"
STANDARD_AMOUNT_UNIT = "標準量"

# =============================================================================
# Unit Synonyms (surface text -> canonical unit)
# =============================================================================

UNIT_SYNONYMS: dict[str, str] = {
    # Weight
    "g": "g",
    "gr": "g",
    "gram": "g",
    "grams": "g",
    "グラム": "g",
    "ぐらむ": "g",
    "kg": "kg",
    "キログラム": "kg",
    "キロ": "kg",
    "mg": "mg",
    "ミリグラム": "mg",
    # Volume
    "ml": "ml",
    "ミリリットル": "ml",
    "ミリ": "ml",
    "cc": "cc",
    "l": "l",
    "リットル": "l",
    # Japanese measures
    "大さじ": "大さじ",
    "大匙": "大さじ",
    "おおさじ": "大さじ",
    "tbsp": "大さじ",
    "小さじ": "小さじ",
    "小匙": "小さじ",
    "こさじ": "小さじ",
    "tsp": "小さじ",
    "カップ": "カップ",
    "かっぷ": "カップ",
    "cup": "カップ",
    "合": "合",
    # Food-specific counters
    "個": "個",
    "こ": "個",
    "コ": "個",
    "ケ": "個",
    "切れ": "切れ",
    "切": "切れ",
    "きれ": "切れ",
    "枚": "枚",
    "まい": "枚",
    "本": "本",
    "ほん": "本",
    "袋": "袋",
    "缶": "缶",
    "パック": "パック",
    "かけ": "かけ",
    "片": "かけ",
    "丁": "丁",
    "束": "束",
    "わ": "束",
    "株": "株",
    "玉": "玉",
    "尾": "尾",
    "匹": "匹",
    "杯": "杯",
    "はい": "杯",
    "ぱい": "杯",
    "パイ": "杯",
    "膳": "膳",
    "皿": "皿",
    "人前": "人前",
    "にんまえ": "人前",
    "一人前": "人前",
    "人分": "人前",
}

# =============================================================================
# Gram Equivalents
# =============================================================================

# Direct physical units: canonical unit -> (grams per unit, confidence)
PHYSICAL_UNIT_GRAMS: dict[str, tuple[float, float]] = {
    "g": (1.0, 1.0),
    "kg": (1000.0, 1.0),
    "mg": (0.001, 1.0),
    "ml": (1.0, 0.95),
    "cc": (1.0, 0.95),
    "l": (1000.0, 0.95),
}

# Generic count-like units: canonical unit -> (grams per unit, confidence).
# Measuring spoons and cups are precise; counters vary with the food.
UNIT_TO_GRAMS: dict[str, tuple[float, float]] = {
    "大さじ": (15.0, 0.85),
    "小さじ": (5.0, 0.85),
    "カップ": (200.0, 0.85),
    "合": (150.0, 0.8),
    "杯": (150.0, 0.75),
    "膳": (150.0, 0.75),
    "人前": (100.0, 0.75),
    "切れ": (80.0, 0.75),
    "枚": (60.0, 0.75),
    "本": (40.0, 0.75),
    "尾": (80.0, 0.75),
    "匹": (80.0, 0.75),
    "個": (50.0, 0.7),
    "袋": (100.0, 0.7),
    "缶": (100.0, 0.7),
    "パック": (50.0, 0.7),
    "かけ": (3.0, 0.7),
    "束": (100.0, 0.7),
    "株": (50.0, 0.7),
    "玉": (100.0, 0.7),
    "皿": (200.0, 0.7),
}

# Category + unit + specific food name overrides (confidence 0.95)
CATEGORY_FOOD_UNIT_GRAMS: dict[FoodCategory, dict[str, dict[str, float]]] = {
    FoodCategory.FRUITS: {
        "個": {
            "りんご": 250.0,
            "みかん": 100.0,
            "バナナ": 100.0,
            "キウイ": 100.0,
            "グレープフルーツ": 300.0,
            "オレンジ": 200.0,
            "柿": 180.0,
            "桃": 200.0,
        },
        "本": {
            "バナナ": 100.0,
        },
    },
    FoodCategory.VEGETABLES: {
        "個": {
            "トマト": 150.0,
            "玉ねぎ": 200.0,
            "じゃがいも": 150.0,
            "ピーマン": 30.0,
        },
        "本": {
            "にんじん": 150.0,
            "きゅうり": 100.0,
            "なす": 80.0,
        },
    },
}

# Category + unit generic overrides (confidence 0.9)
CATEGORY_UNIT_GRAMS: dict[FoodCategory, dict[str, float]] = {
    FoodCategory.RICE: {
        "杯": 150.0,
        "膳": 150.0,
        "カップ": 150.0,
        "合": 150.0,
    },
    FoodCategory.LEAFY_VEGETABLES: {
        "束": 80.0,
        "株": 100.0,
    },
    FoodCategory.MEAT: {
        "切れ": 100.0,
        "枚": 100.0,
    },
    FoodCategory.SEAFOOD: {
        "切れ": 80.0,
        "尾": 100.0,
        "匹": 100.0,
    },
    FoodCategory.EGGS: {
        "個": 50.0,
    },
}

# Single named-food overrides: food name keyword -> unit -> grams (confidence 0.9)
FOOD_UNIT_GRAMS: dict[str, dict[str, float]] = {
    "カレールー": {"かけ": 20.0, "個": 20.0, "皿": 20.0},
    "シチュールー": {"かけ": 20.0, "個": 20.0},
    "食パン": {"枚": 60.0},
    "納豆": {"パック": 45.0},
    "にんにく": {"かけ": 5.0},
    "しょうが": {"かけ": 15.0},
    "豆腐": {"丁": 300.0, "個": 150.0},
    "うどん": {"玉": 250.0},
}

# Fallback grams for the sentinel (tier 6) and unknown units (tier 7)
STANDARD_AMOUNT_GRAMS = 100.0
STANDARD_AMOUNT_CONFIDENCE = 0.6
DEFAULT_SERVING_GRAMS = 100.0
UNKNOWN_UNIT_CONFIDENCE = 0.4

# =============================================================================
# Qualitative Amounts
# =============================================================================

# Ambiguous quantity terms: term -> (grams, confidence)
AMBIGUOUS_QUANTITIES: dict[str, tuple[float, float]] = {
    "ひとつまみ": (1.0, 0.6),
    "少々": (0.5, 0.5),
    "少量": (2.0, 0.5),
    "適量": (5.0, 0.5),
    "適宜": (5.0, 0.5),
    "たっぷり": (30.0, 0.55),
}

# =============================================================================
# Numerals
# =============================================================================

# Supported kanji numerals; anything more complex falls back to 1
KANJI_NUMERALS: dict[str, float] = {
    "一": 1.0,
    "二": 2.0,
    "三": 3.0,
    "四": 4.0,
    "五": 5.0,
    "六": 6.0,
    "七": 7.0,
    "八": 8.0,
    "九": 9.0,
    "十": 10.0,
    "半": 0.5,
}

# Characters that only appear in kanji numerals we do not evaluate
COMPLEX_KANJI_NUMERAL_CHARS = "百千万"


def canonical_unit(unit_text: str) -> str:
    """Map unit text to its canonical unit, returning it unchanged if unknown."""
    key = unit_text.strip().lower()
    return UNIT_SYNONYMS.get(key, key)


def is_known_unit(unit: str) -> bool:
    """Check whether a canonical unit has a gram equivalent somewhere in the lexicon."""
    return (
        unit in PHYSICAL_UNIT_GRAMS
        or unit in UNIT_TO_GRAMS
        or unit == STANDARD_AMOUNT_UNIT
        or any(unit in units for units in FOOD_UNIT_GRAMS.values())
    )
