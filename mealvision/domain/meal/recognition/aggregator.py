"""
Aggregation of food items into result totals.

Pure functions. Totals are always recomputed from the items, never
cached, so they stay consistent after enrichment.
"""

from __future__ import annotations

from typing import Optional, Sequence

from mealvision.domain.meal.recognition.models import (
    FoodItem,
    NutritionTotals,
    VisionAnalysisResult,
    new_analysis_id,
)

EMPTY_OVERALL_CONFIDENCE = 0.7


def compute_totals(items: Sequence[FoodItem]) -> NutritionTotals:
    """
    Sum item nutrition and average confidence.

    Calories are rounded to whole kcal, macros to 1 decimal, confidence
    to 2 decimals.

    Example:
        >>> totals = compute_totals([rice, chicken])
        >>> totals.calories
        417
    """
    if not items:
        return NutritionTotals(overall_confidence=EMPTY_OVERALL_CONFIDENCE)

    return NutritionTotals(
        calories=round(sum(item.calories for item in items)),
        protein=round(sum(item.protein for item in items), 1),
        fat=round(sum(item.fat for item in items), 1),
        carbs=round(sum(item.carbs for item in items), 1),
        overall_confidence=round(sum(item.confidence for item in items) / len(items), 2),
    )


def build_result(
    items: Sequence[FoodItem],
    *,
    provider: str,
    fallback: bool,
    analysis_id: Optional[str] = None,
) -> VisionAnalysisResult:
    """Create a result with freshly computed totals."""
    totals = compute_totals(items)
    return VisionAnalysisResult(
        items=list(items),
        total_calories=totals.calories,
        total_protein=totals.protein,
        total_fat=totals.fat,
        total_carbs=totals.carbs,
        overall_confidence=totals.overall_confidence,
        provider=provider,
        fallback=fallback,
        analysis_id=analysis_id or new_analysis_id(provider),
    )


def recompute_result(
    result: VisionAnalysisResult, items: Sequence[FoodItem]
) -> VisionAnalysisResult:
    """Return a new result with ``items`` and totals recomputed from them."""
    totals = compute_totals(items)
    return result.model_copy(
        update={
            "items": list(items),
            "total_calories": totals.calories,
            "total_protein": totals.protein,
            "total_fat": totals.fat,
            "total_carbs": totals.carbs,
            "overall_confidence": totals.overall_confidence,
        }
    )
