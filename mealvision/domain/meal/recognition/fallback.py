"""
Fallback estimation.

Produces plausible, low-confidence food items when the model returned
nothing usable: one item per description line, or a single generic meal.
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from mealvision.domain.meal.nutrition.models import DEFAULT_MACRO_RATIOS, MacroRatios
from mealvision.domain.meal.recognition.models import FoodItem, FoodSource

DESCRIPTION_ITEM_CONFIDENCE = 0.55
DESCRIPTION_ITEM_CALORIES = 200.0
DESCRIPTION_ITEM_QUANTITY_G = 100.0
MAX_DESCRIPTION_ITEMS = 10

GENERIC_ITEM_NAME = "食事（推定）"
GENERIC_ITEM_CONFIDENCE = 0.5
GENERIC_ITEM_CALORIES = 500.0

_BULLET = re.compile(r"^\s*(?:[-*・•]|\d+[.)])\s*")


def _fallback_item(
    name: str,
    *,
    quantity: float,
    unit: str,
    calories: float,
    confidence: float,
    ratios: MacroRatios,
) -> FoodItem:
    protein, fat, carbs = ratios.derive(calories)
    return FoodItem(
        name=name,
        quantity=quantity,
        unit=unit,
        calories=round(calories),
        protein=protein,
        fat=fat,
        carbs=carbs,
        confidence=confidence,
        source=FoodSource.FALLBACK,
    )


def estimate_from_description(
    description: Optional[str],
    ratios: MacroRatios = DEFAULT_MACRO_RATIOS,
) -> List[FoodItem]:
    """
    Derive one item per non-empty description line.

    Leading list markers are stripped. Returns an empty list when there is
    no usable text.

    Example:
        >>> [i.name for i in estimate_from_description("ご飯\\n- 味噌汁\\n")]
        ['ご飯', '味噌汁']
    """
    if not description:
        return []

    items: List[FoodItem] = []
    for line in description.splitlines():
        name = _BULLET.sub("", line).strip()
        if not name:
            continue
        items.append(
            _fallback_item(
                name[:200],
                quantity=DESCRIPTION_ITEM_QUANTITY_G,
                unit="g",
                calories=DESCRIPTION_ITEM_CALORIES,
                confidence=DESCRIPTION_ITEM_CONFIDENCE,
                ratios=ratios,
            )
        )
        if len(items) >= MAX_DESCRIPTION_ITEMS:
            break
    return items


def generic_fallback_item(ratios: MacroRatios = DEFAULT_MACRO_RATIOS) -> FoodItem:
    """Single generic meal item used when nothing else is available."""
    return _fallback_item(
        GENERIC_ITEM_NAME,
        quantity=1,
        unit="人前",
        calories=GENERIC_ITEM_CALORIES,
        confidence=GENERIC_ITEM_CONFIDENCE,
        ratios=ratios,
    )


def estimate(
    description: Optional[str],
    ratios: MacroRatios = DEFAULT_MACRO_RATIOS,
) -> Tuple[List[FoodItem], str]:
    """
    Fallback items for an unusable model response. Never empty.

    Description lines win; otherwise exactly one generic item.

    Returns:
        (items, strategy) where strategy is "description" or "generic"
    """
    items = estimate_from_description(description, ratios)
    if items:
        return items, "description"
    return [generic_fallback_item(ratios)], "generic"
