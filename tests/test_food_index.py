"""Tests for the reference food index and its async loader."""

import asyncio
import json
import threading

import pytest

from nutrimatch.errors import DatasetLoadError
from nutrimatch.foods.index import FoodIndex, FoodIndexLoader
from nutrimatch.foods.models import Food, FoodCategory, NutrientProfile
from nutrimatch.normalize.text import normalize_text


class TestFoodModel:
    """Tests for dataset record validation."""

    def test_flat_nutrients_are_lifted(self, sample_foods):
        """Test top-level and nested legacy nutrient fields."""
        tofu = sample_foods["tofu"]
        assert tofu.nutrients.calories == 72
        assert tofu.nutrients.extended.fat == 4.2
        assert tofu.nutrients.extended.minerals.potassium == 140
        assert tofu.nutrients.get("magnesium") == 130

    def test_missing_basic_nutrients_are_zero(self, sample_foods):
        """Test basic nutrients absent from the record default to 0."""
        apple = sample_foods["apple"]
        assert apple.nutrients.iron == 0
        assert apple.nutrients.vitamin_d == 0

    def test_missing_extended_nutrients_stay_missing(self, sample_foods):
        """Test extended nutrients are not invented."""
        silken = sample_foods["tofu-silken"]
        assert silken.nutrients.extended is None
        assert silken.nutrients.get("fat") is None

    def test_category_fallback(self):
        """Test unknown subcategories fall back to the parent, then OTHER."""
        assert FoodCategory.parse("野菜-根菜") == FoodCategory.VEGETABLES
        assert FoodCategory.parse("謎") == FoodCategory.OTHER
        assert FoodCategory.parse(None) == FoodCategory.OTHER

    def test_negative_nutrient_rejected(self):
        """Test negative values make a record invalid."""
        with pytest.raises(ValueError):
            Food.model_validate({"id": "x", "name": "x", "calories": -1})

    def test_aliases_must_be_strings(self):
        """Test aliases must be an array of strings."""
        with pytest.raises(ValueError):
            Food.model_validate({"id": "x", "name": "x", "aliases": "y"})
        with pytest.raises(ValueError):
            Food.model_validate({"id": "x", "name": "x", "aliases": [1, 2]})

    def test_profile_from_flat(self):
        """Test building a profile from canonical keys."""
        profile = NutrientProfile.from_flat({"calories": 10, "fat": 1, "zinc": 0.5})
        assert profile.flat() == {
            "calories": 10,
            "protein": 0,
            "iron": 0,
            "folic_acid": 0,
            "calcium": 0,
            "vitamin_d": 0,
            "fat": 1,
            "zinc": 0.5,
        }


class TestNormalizeText:
    """Tests for lookup-key normalization."""

    def test_width_and_case_fold(self):
        """Test width variants and case collide."""
        assert normalize_text("ﾘﾝｺﾞ") == "リンゴ"
        assert normalize_text("ＡＢＣ") == "abc"

    def test_whitespace(self):
        """Test whitespace is collapsed and trimmed."""
        assert normalize_text("  鶏　むね肉 ") == "鶏 むね肉"
        assert normalize_text(None) == ""


class TestFoodIndexConstruction:
    """Tests for building the index from dataset records."""

    def test_from_id_map(self, sample_food_records):
        """Test the bare id-keyed map format."""
        index = FoodIndex.from_records(sample_food_records)
        assert len(index) == len(sample_food_records)
        assert index.get("rice").name == "ご飯"

    def test_from_list(self, sample_food_records):
        """Test a list of records."""
        records = [{"id": key, **value} for key, value in sample_food_records.items()]
        assert len(FoodIndex.from_records(records)) == len(records)

    def test_malformed_records_are_skipped(self, sample_food_records):
        """Test invalid records are skipped, not fatal."""
        records = {
            **sample_food_records,
            "no-name": {"calories": 10},
            "bad-aliases": {"name": "bad", "aliases": "x"},
            "negative": {"name": "neg", "calories": -5},
        }
        index = FoodIndex.from_records({"foods": records})
        assert len(index) == len(sample_food_records)
        assert "no-name" not in index

    def test_no_valid_records_fails(self):
        """Test an index with zero valid records is an error."""
        with pytest.raises(DatasetLoadError):
            FoodIndex.from_records({"foods": {"a": {"calories": 1}}})

    def test_wrong_shape_fails(self):
        """Test a dataset that is neither a map nor a list."""
        with pytest.raises(DatasetLoadError):
            FoodIndex.from_records("foods")

    def test_load_file(self, dataset_file):
        """Test loading from a JSON file."""
        index = FoodIndex.load(dataset_file)
        assert index.exact_match("豆腐").id == "tofu"

    def test_load_missing_file(self, tmp_path):
        """Test a missing file raises DatasetLoadError."""
        with pytest.raises(DatasetLoadError):
            FoodIndex.load(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        """Test a corrupt file raises DatasetLoadError."""
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(DatasetLoadError):
            FoodIndex.load(path)

    def test_bundled_dataset_loads(self):
        """Test the dataset shipped with the package."""
        from nutrimatch.config import DEFAULT_DATASET_PATH

        index = FoodIndex.load(DEFAULT_DATASET_PATH)
        rice = index.exact_match("ご飯")
        assert rice.category == FoodCategory.RICE
        assert rice.nutrients.calories == 168

    def test_bundled_standard_quantities_parse(self):
        """Test every typical serving in the shipped dataset uses a known unit."""
        from nutrimatch.config import DEFAULT_DATASET_PATH
        from nutrimatch.normalize.units import UNKNOWN_UNIT_PARSE_CONFIDENCE, parse_quantity

        foods = [f for f in FoodIndex.load(DEFAULT_DATASET_PATH) if f.standard_quantity]
        assert foods
        for food in foods:
            quantity, confidence = parse_quantity(food.standard_quantity)
            assert quantity.value > 0, food.id
            assert confidence > UNKNOWN_UNIT_PARSE_CONFIDENCE, food.id


class TestFoodIndexLookup:
    """Tests for exact, partial and id lookup."""

    def test_exact_by_name(self, food_index):
        """Test lookup by canonical name."""
        assert food_index.exact_match("ご飯").id == "rice"

    def test_exact_by_alias(self, food_index):
        """Test lookup by alias."""
        assert food_index.exact_match("白米").id == "rice"
        assert food_index.exact_match("サーモン").id == "salmon"

    def test_exact_width_variant(self, food_index):
        """Test half-width katakana finds the full-width alias."""
        assert food_index.exact_match("ﾘﾝｺﾞ").id == "apple"

    def test_exact_miss(self, food_index):
        """Test unknown and empty names."""
        assert food_index.exact_match("ステーキ") is None
        assert food_index.exact_match("") is None

    def test_partial_prefers_names(self, food_index):
        """Test name containment comes before alias containment."""
        results = food_index.partial_match("豆腐")
        assert [food.id for food in results] == ["tofu", "tofu-silken"]

    def test_partial_alias(self, food_index):
        """Test containment in aliases."""
        assert [food.id for food in food_index.partial_match("ソウ")] == ["spinach"]

    def test_partial_limit(self, food_index):
        """Test the result limit."""
        assert len(food_index.partial_match("豆腐", limit=1)) == 1

    def test_get_many(self, food_index):
        """Test unknown ids are left out."""
        assert set(food_index.get_many(["rice", "tofu", "nope"])) == {"rice", "tofu"}

    def test_by_category(self, food_index):
        """Test category listing."""
        assert [food.id for food in food_index.by_category("豆類")] == ["tofu", "tofu-silken"]
        assert food_index.by_category(FoodCategory.DAIRY) == []

    def test_iteration(self, food_index, sample_food_records):
        """Test iterating yields every food."""
        assert {food.id for food in food_index} == set(sample_food_records)


class TestFuzzyMatch:
    """Tests for similarity-ranked lookup."""

    def test_exact_match_is_sole_result(self, food_index):
        """Test an exact hit returns alone at 1.0 even with similar foods."""
        results = food_index.fuzzy_match("豆腐", limit=5)
        assert len(results) == 1
        assert results[0].matched_food.id == "tofu"
        assert results[0].similarity == 1.0
        assert results[0].match_type == "exact"

    def test_ranked_results(self, food_index):
        """Test results are sorted by similarity."""
        results = food_index.fuzzy_match("豆腐サラダ", limit=5)
        assert [r.matched_food.id for r in results] == ["tofu", "tofu-silken"]
        assert results[0].similarity == pytest.approx(4 / 7, abs=1e-3)
        assert results[1].similarity == pytest.approx(0.4, abs=1e-3)
        assert all(r.match_type == "fuzzy" for r in results)

    def test_best_of_name_and_alias(self, food_index):
        """Test the alias score wins when it beats the name score."""
        results = food_index.fuzzy_match("ごはんとさけ")
        rice = next(r for r in results if r.matched_food.id == "rice")
        assert rice.matched_term == "ごはん"
        assert rice.similarity == pytest.approx(2 / 3, abs=1e-3)

    def test_one_result_per_food(self, food_index):
        """Test a food matched through several terms appears once."""
        results = food_index.fuzzy_match("木綿とうふ", limit=10)
        ids = [r.matched_food.id for r in results]
        assert len(ids) == len(set(ids))

    def test_floor_filters(self, food_index):
        """Test nothing below the 0.35 floor is returned."""
        assert food_index.fuzzy_match("ステーキ") == []

    def test_limit(self, food_index):
        """Test the result limit."""
        assert len(food_index.fuzzy_match("豆腐サラダ", limit=1)) == 1
        with pytest.raises(ValueError):
            food_index.fuzzy_match("豆腐", limit=0)

    def test_empty_query(self, food_index):
        """Test empty queries return nothing."""
        assert food_index.fuzzy_match("   ") == []


class TestFoodIndexLoader:
    """Tests for the single-flight async loader."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_load(self, dataset_file):
        """Test concurrent first calls trigger a single load."""
        calls = []

        def counting_loader(path):
            calls.append(path)
            return FoodIndex.load(path)

        loader = FoodIndexLoader(dataset_file, loader=counting_loader)
        indexes = await asyncio.gather(*(loader.get() for _ in range(5)))

        assert len(calls) == 1
        assert all(index is indexes[0] for index in indexes)
        assert loader.loaded

    @pytest.mark.asyncio
    async def test_later_calls_reuse_index(self, dataset_file):
        """Test the index is cached after the first load."""
        loader = FoodIndexLoader(dataset_file)
        first = await loader.get()
        assert await loader.get() is first

    @pytest.mark.asyncio
    async def test_failed_load_can_retry(self, tmp_path, sample_food_records):
        """Test a failed load is not cached."""
        path = tmp_path / "late.json"
        loader = FoodIndexLoader(path)

        with pytest.raises(DatasetLoadError):
            await loader.get()
        assert not loader.loaded

        path.write_text(json.dumps({"foods": sample_food_records}), encoding="utf-8")
        index = await loader.get()
        assert len(index) == len(sample_food_records)

    @pytest.mark.asyncio
    async def test_reload(self, dataset_file, sample_food_records):
        """Test reload picks up a changed dataset."""
        loader = FoodIndexLoader(dataset_file)
        first = await loader.get()

        records = {**sample_food_records, "natto": {"name": "納豆", "calories": 200}}
        dataset_file.write_text(json.dumps({"foods": records}), encoding="utf-8")

        second = await loader.reload()
        assert second is not first
        assert second.exact_match("納豆") is not None

    @pytest.mark.asyncio
    async def test_reload_during_load_keeps_newer_index(self, dataset_file):
        """Test a load started before reload() does not replace the reloaded index."""
        started = threading.Event()
        release = threading.Event()
        calls = []

        def gated_loader(path):
            calls.append(path)
            if len(calls) == 1:
                started.set()
                release.wait(timeout=5)
            return FoodIndex.load(path)

        loader = FoodIndexLoader(dataset_file, loader=gated_loader)
        pending = asyncio.ensure_future(loader.get())
        assert await asyncio.to_thread(started.wait, 5)

        fresh = await loader.reload()
        release.set()
        stale = await pending

        assert stale is not fresh
        assert len(calls) == 2
        assert await loader.get() is fresh

    def test_from_settings(self, settings):
        """Test the loader reads the configured path."""
        assert FoodIndexLoader.from_settings(settings).path == settings.food_dataset_path
