"""
Unit tests for nutrition domain models.
"""

import pytest
from pydantic import ValidationError

from mealvision.domain.meal.nutrition.models import (
    DEFAULT_MACRO_RATIOS,
    CompositionRecord,
    MacroRatios,
)


class TestMacroRatios:
    """Calorie → macro approximation."""

    def test_default_derivation(self) -> None:
        assert DEFAULT_MACRO_RATIOS.derive(200) == (7.5, 5.6, 30.0)

    def test_zero_calories(self) -> None:
        assert DEFAULT_MACRO_RATIOS.derive(0) == (0.0, 0.0, 0.0)

    def test_ratio_bounds(self) -> None:
        with pytest.raises(ValidationError):
            MacroRatios(protein=1.5)


class TestCompositionRecord:
    """Row mapping with column aliases."""

    def test_english_columns(self) -> None:
        record = CompositionRecord.from_row(
            {
                "food_code": 11220,
                "name_ja": "鶏むね肉",
                "energy_kcal": "108",
                "protein_g": 22.3,
                "fat_g": 1.5,
                "carbs_g": 0.1,
            }
        )

        assert record is not None
        assert record.food_code == "11220"
        assert record.energy_kcal == 108.0
        assert record.protein_g == 22.3

    def test_japanese_columns(self) -> None:
        record = CompositionRecord.from_row(
            {
                "食品番号": "17045",
                "食品名": "味噌汁",
                "エネルギー(kcal)": 25,
                "たん白質": 1.7,
                "脂質": 0.7,
                "炭水化物": 3.0,
            }
        )

        assert record is not None
        assert record.name == "味噌汁"
        assert record.energy_kcal == 25
        assert record.protein_g == 1.7

    def test_case_insensitive(self) -> None:
        record = CompositionRecord.from_row(
            {"FOOD_CODE": "1", "Name_JA": "ご飯", "ENERGY_KCAL": 156}
        )

        assert record is not None
        assert record.energy_kcal == 156

    def test_missing_values_are_none(self) -> None:
        record = CompositionRecord.from_row(
            {"food_code": "1", "name_ja": "水", "energy_kcal": None, "fat_g": "Tr", "carbs_g": -1}
        )

        assert record is not None
        assert record.energy_kcal is None
        assert record.fat_g is None
        assert record.carbs_g is None

    def test_unmappable_row(self) -> None:
        assert CompositionRecord.from_row({"name_ja": "ご飯"}) is None
        assert CompositionRecord.from_row({"food_code": "1", "name_ja": ""}) is None
