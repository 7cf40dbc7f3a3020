"""Tests for food name matching and the result cache."""

import logging

import pytest

from nutrimatch.foods.cache import LRUCache
from nutrimatch.foods.matching import FoodMatcher
from nutrimatch.foods.models import (
    ConfidenceLevel,
    FoodCategory,
    FoodMatchResult,
    confidence_level,
)


class TestConfidenceLevel:
    """Tests for the similarity tier mapping."""

    @pytest.mark.parametrize(
        ("similarity", "expected"),
        [
            (1.0, ConfidenceLevel.HIGH),
            (0.85, ConfidenceLevel.HIGH),
            (0.84, ConfidenceLevel.MEDIUM),
            (0.70, ConfidenceLevel.MEDIUM),
            (0.50, ConfidenceLevel.LOW),
            (0.35, ConfidenceLevel.VERY_LOW),
            (0.34, None),
        ],
    )
    def test_tiers(self, similarity, expected):
        """Test tier boundaries."""
        assert confidence_level(similarity) == expected
        assert FoodMatcher.confidence_level(similarity) == expected

    def test_describe_confidence(self):
        """Test each tier carries a message."""
        level, message = FoodMatcher.describe_confidence(0.9)
        assert level == ConfidenceLevel.HIGH
        assert message

        level, message = FoodMatcher.describe_confidence(0.1)
        assert level is None
        assert message


class TestMatchFood:
    """Tests for FoodMatcher.match_food."""

    def test_exact_match(self, matcher):
        """Test an exact name matches at 1.0."""
        result = matcher.match_food("ご飯")
        assert isinstance(result, FoodMatchResult)
        assert result.matched_food.id == "rice"
        assert result.similarity == 1.0
        assert result.confidence_level == ConfidenceLevel.HIGH

    def test_fuzzy_match(self, matcher):
        """Test a partial name matches fuzzily."""
        result = matcher.match_food("鶏むね")
        assert result.matched_food.id == "chicken"
        assert result.similarity == pytest.approx(6 / 7, abs=1e-3)
        assert result.input_name == "鶏むね"

    def test_no_match_below_floor(self, matcher):
        """Test nothing is returned below the absolute floor."""
        assert matcher.match_food("ステーキ") is None
        assert matcher.match_food("ステーキ", limit=5) is None

    def test_low_confidence_match_is_returned(self, matcher, caplog):
        """Test a match between the floor and the threshold is returned and logged."""
        with caplog.at_level(logging.WARNING, logger="nutrimatch.foods.matching"):
            result = matcher.match_food("ご飯の大盛り特盛", min_similarity=0.5)

        assert result.matched_food.id == "rice"
        assert result.similarity == pytest.approx(0.4, abs=1e-3)
        assert result.confidence_level == ConfidenceLevel.VERY_LOW
        assert "Low-confidence match" in caplog.text

    def test_empty_name(self, matcher):
        """Test empty names never match."""
        assert matcher.match_food("") is None
        assert matcher.match_food("  ") is None

    def test_category_preference(self, matcher):
        """Test candidates in the requested category win."""
        assert matcher.match_food("ごはんとさけ").matched_food.id == "rice"

        result = matcher.match_food("ごはんとさけ", category=FoodCategory.SEAFOOD)
        assert result.matched_food.id == "salmon"
        assert result.similarity == pytest.approx(0.5, abs=1e-3)

    def test_category_without_candidates(self, matcher):
        """Test the best overall match is kept when no candidate is in the category."""
        result = matcher.match_food("ごはんとさけ", category="乳類")
        assert result.matched_food.id == "rice"

    def test_strict(self, matcher):
        """Test strict mode accepts only exact names and aliases."""
        assert matcher.match_food("鶏むね", strict=True) is None
        result = matcher.match_food("白米", strict=True)
        assert result.matched_food.id == "rice"
        assert result.match_type == "exact"

    def test_invalid_arguments(self, matcher, food_index):
        """Test contract errors."""
        with pytest.raises(ValueError):
            matcher.match_food("ご飯", limit=0)
        with pytest.raises(ValueError):
            FoodMatcher(food_index, min_similarity=1.5)


class TestMatchFoods:
    """Tests for batch matching."""

    def test_preserves_order_and_duplicates(self, matcher):
        """Test one result per input, duplicates included."""
        results = matcher.match_foods(["豆腐", "ステーキ", "豆腐"])

        assert [name for name, _ in results] == ["豆腐", "ステーキ", "豆腐"]
        assert results[0][1].matched_food.id == "tofu"
        assert results[1][1] is None
        assert results[2][1].matched_food.id == "tofu"

    @pytest.mark.asyncio
    async def test_async_batch(self, cached_matcher):
        """Test concurrent matching returns the same pairs in order."""
        names = ["ご飯", "鶏むね", "ステーキ", "ご飯"]
        results = await cached_matcher.match_foods_async(names)

        assert [name for name, _ in results] == names
        assert results[0][1].matched_food.id == "rice"
        assert results[1][1].matched_food.id == "chicken"
        assert results[2][1] is None


class TestMatchCache:
    """Tests for match result caching."""

    def test_repeated_lookup_hits_cache(self, food_index):
        """Test the second identical lookup is served from the cache."""
        cache = LRUCache(max_size=8, ttl_seconds=60)
        matcher = FoodMatcher(food_index, cache=cache)

        first = matcher.match_food("鶏むね")
        second = matcher.match_food("鶏むね")

        assert cache.hits == 1
        assert second.matched_food == first.matched_food
        assert second.similarity == first.similarity

    def test_cached_result_keeps_input_name(self, cached_matcher):
        """Test width variants share a cache entry but keep their own input name."""
        cached_matcher.match_food("ﾘﾝｺﾞ")
        result = cached_matcher.match_food("リンゴ")
        assert result.input_name == "リンゴ"

    def test_from_settings(self, food_index, settings):
        """Test thresholds come from settings."""
        matcher = FoodMatcher.from_settings(food_index, settings)
        assert matcher.min_similarity == settings.min_similarity
        assert matcher.candidate_limit == settings.fuzzy_match_limit


class TestLRUCache:
    """Tests for the bounded LRU/TTL cache."""

    def test_eviction_order(self):
        """Test the least recently used entry is evicted."""
        cache = LRUCache(max_size=2, ttl_seconds=60)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_expiry(self):
        """Test entries expire after the TTL."""
        now = [0.0]
        cache = LRUCache(max_size=4, ttl_seconds=10, clock=lambda: now[0])
        cache.set("a", 1)

        now[0] = 9.9
        assert cache.get("a") == 1
        now[0] = 10.0
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_disabled(self):
        """Test a zero-size cache stores nothing."""
        cache = LRUCache(max_size=0)
        cache.set("a", 1)
        assert cache.get("a") is None
        assert not cache.enabled

    def test_invalid_configuration(self):
        """Test negative sizes are rejected."""
        with pytest.raises(ValueError):
            LRUCache(max_size=-1)
