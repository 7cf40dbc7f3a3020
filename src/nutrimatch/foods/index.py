"""In-memory reference food index with exact, partial and fuzzy lookup."""

import asyncio
import json
from collections.abc import Callable, Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from rapidfuzz import fuzz, process

from nutrimatch.errors import DatasetLoadError
from nutrimatch.foods.models import (
    VERY_LOW_CONFIDENCE_THRESHOLD,
    Food,
    FoodCategory,
    FoodMatchResult,
)
from nutrimatch.logging_config import get_logger
from nutrimatch.normalize.text import normalize_text

logger = get_logger(__name__)


class FoodIndex:
    """
    Read-only index over the reference foods.

    Built once into three maps: foods by id, normalized canonical name to
    id, and normalized alias to id. Nothing mutates the maps after
    construction, so one index can be shared by any number of readers.
    """

    def __init__(self, foods: Iterable[Food]):
        self._by_id: dict[str, Food] = {}
        self._name_to_id: dict[str, str] = {}
        self._alias_to_id: dict[str, str] = {}

        for food in foods:
            self._add(food)

        # Flat term list for fuzzy scoring: one entry per name and alias
        self._terms: list[str] = []
        self._term_owners: list[tuple[str, str]] = []  # (food id, original term)
        for food in self._by_id.values():
            for term in (food.name, *sorted(food.aliases)):
                key = normalize_text(term)
                if key:
                    self._terms.append(key)
                    self._term_owners.append((food.id, term))

    def _add(self, food: Food) -> None:
        if food.id in self._by_id:
            logger.warning(f"Duplicate food id {food.id!r}; keeping the first record")
            return
        self._by_id[food.id] = food

        name_key = normalize_text(food.name)
        if name_key in self._name_to_id:
            logger.warning(
                f"Food {food.id!r} shares the name {food.name!r} with "
                f"{self._name_to_id[name_key]!r}; exact lookup keeps the first"
            )
        else:
            self._name_to_id[name_key] = food.id

        for alias in food.aliases:
            self._alias_to_id.setdefault(normalize_text(alias), food.id)

    # =========================================================================
    # Construction
    # =========================================================================

    @classmethod
    def from_records(cls, data: Any) -> "FoodIndex":
        """
        Build an index from parsed dataset JSON.

        Accepts ``{"foods": {id: record}}``, a bare ``{id: record}`` map, or a
        list of records. Records that fail validation are skipped with a
        warning; an index with no valid records is an error.
        """
        if isinstance(data, Mapping) and isinstance(data.get("foods"), (Mapping, list)):
            data = data["foods"]

        if isinstance(data, Mapping):
            records = []
            for key, record in data.items():
                if isinstance(record, Mapping):
                    record = {"id": key, **record} if "id" not in record else dict(record)
                records.append(record)
        elif isinstance(data, list):
            records = data
        else:
            raise DatasetLoadError("Food dataset must be a map of records keyed by id or a list")

        foods: list[Food] = []
        skipped = 0
        for record in records:
            try:
                foods.append(Food.model_validate(record))
            except ValidationError as e:
                skipped += 1
                record_id = record.get("id") if isinstance(record, Mapping) else None
                logger.warning(
                    f"Skipping malformed food record {record_id!r}: {e.error_count()} error(s)"
                )

        if not foods:
            raise DatasetLoadError(
                f"Food dataset contains no valid records ({skipped} malformed)"
            )

        index = cls(foods)
        logger.info(f"Loaded {len(index)} foods into index ({skipped} skipped)")
        return index

    @classmethod
    def load(cls, path: Path | str) -> "FoodIndex":
        """Read and index a JSON dataset file."""
        path = Path(path)
        try:
            with path.open(encoding="utf-8") as f:
                data = json.load(f)
        except OSError as e:
            raise DatasetLoadError(f"Cannot read food dataset {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise DatasetLoadError(f"Food dataset {path} is not valid JSON: {e}") from e
        return cls.from_records(data)

    # =========================================================================
    # Lookup
    # =========================================================================

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[Food]:
        return iter(self._by_id.values())

    def __contains__(self, food_id: object) -> bool:
        return food_id in self._by_id

    def get(self, food_id: str) -> Food | None:
        """Get a food by id."""
        return self._by_id.get(food_id)

    def get_many(self, food_ids: Iterable[str]) -> dict[str, Food]:
        """Get the foods for the given ids; unknown ids are left out."""
        return {food_id: self._by_id[food_id] for food_id in food_ids if food_id in self._by_id}

    def by_category(self, category: FoodCategory | str, limit: int = 20) -> list[Food]:
        """List foods in a category, in dataset order."""
        resolved = FoodCategory.parse(category)
        return [food for food in self._by_id.values() if food.category == resolved][:limit]

    def exact_match(self, name: str) -> Food | None:
        """Look up a food by normalized canonical name, then by alias."""
        key = normalize_text(name)
        if not key:
            return None
        food_id = self._name_to_id.get(key) or self._alias_to_id.get(key)
        return self._by_id[food_id] if food_id else None

    def partial_match(self, name: str, limit: int = 10) -> list[Food]:
        """
        Find foods whose name or alias contains the query.

        Name matches come before alias matches.
        """
        query = normalize_text(name)
        if not query:
            return []

        results: list[Food] = []
        seen: set[str] = set()
        for key, food_id in (*self._name_to_id.items(), *self._alias_to_id.items()):
            if query in key and food_id not in seen:
                seen.add(food_id)
                results.append(self._by_id[food_id])
                if len(results) >= limit:
                    break
        return results

    def fuzzy_match(
        self,
        name: str,
        limit: int = 5,
        min_similarity: float = VERY_LOW_CONFIDENCE_THRESHOLD,
    ) -> list[FoodMatchResult]:
        """
        Rank foods by string similarity to the query.

        An exact hit is returned alone at similarity 1.0. Otherwise every
        name and alias is scored with the normalized Indel similarity, the
        best score per food is kept, and foods below ``min_similarity`` are
        dropped.

        Args:
            name: Free-text food name.
            limit: Maximum number of results.
            min_similarity: Similarity floor in [0, 1].

        Returns:
            Match results sorted by similarity, best first.
        """
        if limit < 1:
            raise ValueError(f"limit must be at least 1, got {limit}")

        query = normalize_text(name)
        if not query:
            return []

        exact = self.exact_match(name)
        if exact is not None:
            matched_term = exact.name if normalize_text(exact.name) == query else query
            return [FoodMatchResult(name, exact, 1.0, "exact", matched_term)]

        scored = process.extract(
            query,
            self._terms,
            scorer=fuzz.ratio,
            score_cutoff=min_similarity * 100,
            limit=None,
        )

        best: dict[str, tuple[float, str]] = {}
        for _term, score, position in scored:
            food_id, original = self._term_owners[position]
            if food_id not in best or score > best[food_id][0]:
                best[food_id] = (score, original)

        ranked = sorted(best.items(), key=lambda item: (-item[1][0], item[0]))[:limit]
        return [
            FoodMatchResult(
                input_name=name,
                matched_food=self._by_id[food_id],
                similarity=round(score / 100, 4),
                match_type="fuzzy",
                matched_term=original,
            )
            for food_id, (score, original) in ranked
        ]


class FoodIndexLoader:
    """
    Lazily loads a FoodIndex exactly once.

    Concurrent first callers await the same in-flight load. A failed load
    is not cached, so the next call retries.
    """

    def __init__(
        self,
        path: Path | str,
        loader: Callable[[Path], FoodIndex] = FoodIndex.load,
    ):
        self.path = Path(path)
        self._loader = loader
        self._index: FoodIndex | None = None
        self._task: asyncio.Task[FoodIndex] | None = None

    @classmethod
    def from_settings(cls, settings) -> "FoodIndexLoader":
        return cls(settings.food_dataset_path)

    @property
    def loaded(self) -> bool:
        return self._index is not None

    async def get(self) -> FoodIndex:
        """Return the index, loading it on first use."""
        if self._index is not None:
            return self._index

        if self._task is None:
            self._task = asyncio.ensure_future(self._load())
        task = self._task

        try:
            # Shielded so one cancelled caller does not cancel the shared load
            return await asyncio.shield(task)
        except Exception:
            if self._task is task:
                self._task = None
            raise

    async def _load(self) -> FoodIndex:
        logger.info(f"Loading food dataset from {self.path}")
        index = await asyncio.to_thread(self._loader, self.path)
        # A load superseded by reload() must not replace the newer index
        if self._task is asyncio.current_task():
            self._index = index
        return index

    async def reload(self) -> FoodIndex:
        """Drop the loaded index and load the dataset again."""
        self._index = None
        self._task = None
        return await self.get()
