"""
Unit tests for totals aggregation.
"""

import pytest

from mealvision.domain.meal.recognition.aggregator import (
    EMPTY_OVERALL_CONFIDENCE,
    build_result,
    compute_totals,
    recompute_result,
)


class TestComputeTotals:
    """Sum and rounding rules."""

    def test_sums_items(self, make_item) -> None:
        items = [
            make_item(calories=250, protein=4.0, fat=0.5, carbs=55.0, confidence=0.9),
            make_item(name="鶏むね肉", calories=162.4, protein=33.4, fat=2.2, carbs=0.1, confidence=0.7),
        ]

        totals = compute_totals(items)

        assert totals.calories == 412
        assert totals.protein == pytest.approx(37.4)
        assert totals.fat == pytest.approx(2.7)
        assert totals.carbs == pytest.approx(55.1)
        assert totals.overall_confidence == 0.8

    def test_empty_default_confidence(self) -> None:
        totals = compute_totals([])

        assert totals.calories == 0
        assert totals.overall_confidence == EMPTY_OVERALL_CONFIDENCE

    def test_total_is_rounded_sum(self, make_item) -> None:
        """Test totalCalories equals the rounded sum of item calories."""
        items = [make_item(calories=c) for c in (100.4, 200.4, 0.4)]

        assert compute_totals(items).calories == round(100.4 + 200.4 + 0.4)


class TestBuildResult:
    """Result construction."""

    def test_build_result(self, make_item) -> None:
        result = build_result([make_item()], provider="gemini", fallback=False)

        assert result.total_calories == 250
        assert result.provider == "gemini"
        assert result.analysis_id.startswith("gemini-")
        assert result.processed_at.tzinfo is not None

    def test_unique_analysis_ids(self, make_item) -> None:
        first = build_result([make_item()], provider="mock", fallback=False)
        second = build_result([make_item()], provider="mock", fallback=False)

        assert first.analysis_id != second.analysis_id

    def test_recompute_after_item_change(self, make_item) -> None:
        result = build_result([make_item(calories=250)], provider="gemini", fallback=False)

        updated = recompute_result(result, [make_item(calories=162.0), make_item(calories=60)])

        assert updated.total_calories == 222
        assert updated.analysis_id == result.analysis_id
        assert result.total_calories == 250

    def test_camel_case_serialisation(self, make_item) -> None:
        result = build_result([make_item(food_code="01088")], provider="gemini", fallback=True)

        data = result.model_dump(by_alias=True, mode="json")

        assert data["totalCalories"] == 250
        assert data["overallConfidence"] == 0.8
        assert data["fallback"] is True
        assert "analysisId" in data
        assert "processedAt" in data
        assert data["items"][0]["foodCode"] == "01088"

    def test_with_image_url_returns_copy(self, make_item) -> None:
        result = build_result([make_item()], provider="gemini", fallback=False)

        stored = result.with_image_url("https://cdn.example/meal.jpg")

        assert stored.image_url == "https://cdn.example/meal.jpg"
        assert result.image_url is None
        assert stored.analysis_id == result.analysis_id
