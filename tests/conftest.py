"""Pytest configuration and shared fixtures."""

import json

import pytest

from nutrimatch.config import Settings
from nutrimatch.foods.cache import LRUCache
from nutrimatch.foods.index import FoodIndex
from nutrimatch.foods.matching import FoodMatcher
from nutrimatch.foods.models import Food

# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow running")


# =============================================================================
# Dataset Fixtures
# =============================================================================


@pytest.fixture
def sample_food_records():
    """Small reference dataset keyed by id, in the on-disk format."""
    return {
        "rice": {
            "name": "ご飯",
            "standard_quantity": "1杯",
            "aliases": ["ごはん", "白米"],
            "category": "穀類-米",
            "calories": 168,
            "protein": 2.5,
            "iron": 0.1,
            "folic_acid": 3,
            "calcium": 3,
            "vitamin_d": 0,
            "extended_nutrients": {"fat": 0.3, "carbohydrate": 37.1, "dietary_fiber": 0.3},
        },
        "tofu": {
            "name": "豆腐",
            "aliases": ["木綿豆腐", "とうふ"],
            "category": "豆類",
            "calories": 72,
            "protein": 6.6,
            "iron": 0.9,
            "folic_acid": 12,
            "calcium": 86,
            "vitamin_d": 0,
            "extended_nutrients": {
                "fat": 4.2,
                "carbohydrate": 1.6,
                "minerals": {"potassium": 140, "magnesium": 130},
            },
        },
        "tofu-silken": {
            "name": "絹ごし豆腐",
            "category": "豆類",
            "calories": 56,
            "protein": 4.9,
            "iron": 0.8,
            "folic_acid": 12,
            "calcium": 75,
        },
        "apple": {
            "name": "りんご",
            "aliases": ["リンゴ", "林檎"],
            "category": "果物",
            "calories": 54,
            "protein": 0.2,
            "folic_acid": 5,
            "calcium": 3,
            "extended_nutrients": {"carbohydrate": 14.6, "vitamins": {"vitamin_c": 4}},
        },
        "chicken": {
            "name": "鶏むね肉",
            "category": "肉類",
            "calories": 108,
            "protein": 22.3,
            "iron": 0.2,
            "folic_acid": 8,
            "calcium": 4,
            "vitamin_d": 0.1,
            "extended_nutrients": {"fat": 1.5, "carbohydrate": 0},
        },
        "salmon": {
            "name": "鮭",
            "aliases": ["さけ", "サーモン"],
            "category": "魚介類",
            "calories": 133,
            "protein": 22.3,
            "iron": 0.5,
            "folic_acid": 20,
            "calcium": 14,
            "vitamin_d": 32,
        },
        "spinach": {
            "name": "ほうれん草",
            "aliases": ["ホウレンソウ"],
            "category": "野菜-葉物",
            "calories": 20,
            "protein": 2.2,
            "iron": 2.0,
            "folic_acid": 210,
            "calcium": 49,
        },
        "curry-roux": {
            "name": "カレールー",
            "category": "調理加工食品",
            "calories": 512,
            "protein": 6.5,
            "iron": 3.5,
            "folic_acid": 9,
            "calcium": 90,
        },
    }


@pytest.fixture
def sample_foods(sample_food_records):
    """Validated Food models for the sample dataset."""
    return {
        food_id: Food.model_validate({"id": food_id, **record})
        for food_id, record in sample_food_records.items()
    }


@pytest.fixture
def food_index(sample_food_records):
    """FoodIndex over the sample dataset."""
    return FoodIndex.from_records({"foods": sample_food_records})


@pytest.fixture
def matcher(food_index):
    """FoodMatcher with the default thresholds and no cache."""
    return FoodMatcher(food_index)


@pytest.fixture
def cached_matcher(food_index):
    """FoodMatcher with a small result cache."""
    return FoodMatcher(food_index, cache=LRUCache(max_size=16, ttl_seconds=60))


@pytest.fixture
def dataset_file(tmp_path, sample_food_records):
    """Sample dataset written to a temporary JSON file."""
    path = tmp_path / "foods.json"
    path.write_text(
        json.dumps({"version": "test", "foods": sample_food_records}, ensure_ascii=False),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def settings(dataset_file):
    """Settings pointing at the temporary dataset, ignoring any .env file."""
    return Settings(_env_file=None, food_dataset_path=dataset_file, match_cache_size=0)
