"""Free-text food name to reference food matching."""

import asyncio
from collections.abc import Iterable

from nutrimatch.foods.cache import LRUCache
from nutrimatch.foods.index import FoodIndex
from nutrimatch.foods.models import (
    HIGH_CONFIDENCE_THRESHOLD,
    LOW_CONFIDENCE_THRESHOLD,
    MEDIUM_CONFIDENCE_THRESHOLD,
    VERY_LOW_CONFIDENCE_THRESHOLD,
    ConfidenceLevel,
    FoodCategory,
    FoodMatchResult,
    confidence_level,
)
from nutrimatch.logging_config import get_logger
from nutrimatch.normalize.text import normalize_text

logger = get_logger(__name__)

# User-facing descriptions per confidence tier
CONFIDENCE_MESSAGES: dict[ConfidenceLevel | None, str] = {
    ConfidenceLevel.HIGH: "確実に一致しました",
    ConfidenceLevel.MEDIUM: "おそらく一致しています",
    ConfidenceLevel.LOW: "一致の可能性があります。確認してください",
    ConfidenceLevel.VERY_LOW: "一致の確度が低いです。別の食品名を試してください",
    None: "一致する食品が見つかりませんでした",
}


class FoodMatcher:
    """Service for matching food names to reference foods."""

    # Confidence thresholds
    HIGH_THRESHOLD = HIGH_CONFIDENCE_THRESHOLD
    MEDIUM_THRESHOLD = MEDIUM_CONFIDENCE_THRESHOLD
    LOW_THRESHOLD = LOW_CONFIDENCE_THRESHOLD
    ABSOLUTE_FLOOR = VERY_LOW_CONFIDENCE_THRESHOLD

    def __init__(
        self,
        index: FoodIndex,
        min_similarity: float = LOW_CONFIDENCE_THRESHOLD,
        candidate_limit: int = 5,
        cache: LRUCache | None = None,
    ):
        if not 0.0 <= min_similarity <= 1.0:
            raise ValueError(f"min_similarity must be within [0, 1], got {min_similarity}")
        self.index = index
        self.min_similarity = min_similarity
        self.candidate_limit = candidate_limit
        self._cache = cache if cache is not None else LRUCache(max_size=0)

    @classmethod
    def from_settings(cls, index: FoodIndex, settings) -> "FoodMatcher":
        """Build a matcher with thresholds and cache sizing from settings."""
        return cls(
            index,
            min_similarity=settings.min_similarity,
            candidate_limit=settings.fuzzy_match_limit,
            cache=LRUCache(settings.match_cache_size, settings.match_cache_ttl_seconds),
        )

    def _candidates(self, name: str, limit: int) -> list[FoodMatchResult]:
        key = (normalize_text(name), limit)
        cached = self._cache.get(key)
        if cached is not None:
            return [
                FoodMatchResult(name, r.matched_food, r.similarity, r.match_type, r.matched_term)
                for r in cached
            ]
        results = self.index.fuzzy_match(name, limit=limit)
        self._cache.set(key, results)
        return results

    def match_food(
        self,
        name: str,
        min_similarity: float | None = None,
        limit: int = 1,
        category: FoodCategory | str | None = None,
        strict: bool = False,
    ) -> FoodMatchResult | None:
        """
        Find the best reference food for a name.

        Args:
            name: Free-text food name.
            min_similarity: Caller's acceptance threshold (default from the matcher).
            limit: Number of candidates to consider.
            category: Prefer candidates in this category when any are present.
            strict: Only accept exact name or alias matches.

        Returns:
            The best match, or None when nothing reaches the absolute floor
            (or, with ``strict``, nothing matches exactly). A match between
            the floor and ``min_similarity`` is returned and logged as low
            confidence.
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")
        threshold = self.min_similarity if min_similarity is None else min_similarity

        if not normalize_text(name):
            return None

        if strict:
            food = self.index.exact_match(name)
            if food is None:
                logger.debug(f"No exact match for {name!r}")
                return None
            return FoodMatchResult(name, food, 1.0, "exact", food.name)

        fetch = max(limit, self.candidate_limit) if category is not None else limit
        candidates = self._candidates(name, fetch)
        if not candidates:
            logger.info(f"No food match for {name!r}")
            return None

        best = candidates[0]
        if category is not None:
            wanted = FoodCategory.parse(category)
            in_category = [c for c in candidates if c.matched_food.category == wanted]
            if in_category:
                best = in_category[0]

        if best.similarity < threshold and best.similarity < self.ABSOLUTE_FLOOR:
            logger.info(f"Best match for {name!r} is below the similarity floor ({best.similarity:.2f})")
            return None

        if best.similarity < threshold:
            logger.warning(
                f"Low-confidence match for {name!r}: {best.matched_food.name!r} "
                f"(similarity {best.similarity:.2f} < {threshold:.2f})"
            )
        else:
            logger.debug(
                f"Matched {name!r} -> {best.matched_food.name!r} ({best.similarity:.2f})"
            )
        return best

    def match_foods(
        self,
        names: Iterable[str],
        min_similarity: float | None = None,
    ) -> list[tuple[str, FoodMatchResult | None]]:
        """
        Match each name independently.

        Returns one ``(name, result)`` pair per input, in input order,
        duplicates included.
        """
        return [(name, self.match_food(name, min_similarity=min_similarity)) for name in names]

    async def match_foods_async(
        self,
        names: Iterable[str],
        min_similarity: float | None = None,
    ) -> list[tuple[str, FoodMatchResult | None]]:
        """Match names concurrently in worker threads, preserving input order."""
        names = list(names)
        results = await asyncio.gather(
            *(asyncio.to_thread(self.match_food, name, min_similarity) for name in names)
        )
        return list(zip(names, results, strict=True))

    @staticmethod
    def confidence_level(similarity: float) -> ConfidenceLevel | None:
        """Map a similarity to its reporting tier."""
        return confidence_level(similarity)

    @staticmethod
    def describe_confidence(similarity: float) -> tuple[ConfidenceLevel | None, str]:
        """Return the tier for a similarity and a short message for display."""
        level = confidence_level(similarity)
        return level, CONFIDENCE_MESSAGES[level]
