"""Deterministic stub vision provider.

Used when real AI analysis is disabled and as the degraded path after a
provider failure. Always answers with the same Gemini-shaped response.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Sequence

from mealvision.domain.meal.recognition.models import AnalysisRequest

# (name, quantity, unit, kcal per unit)
STUB_FOODS: Sequence[tuple] = (
    ("ご飯", 150, "g", 1.68),
    ("鶏胸肉", 100, "g", 1.65),
    ("味噌汁", 200, "ml", 0.3),
)

STUB_CONFIDENCE = 0.8


def stub_items() -> List[Dict[str, Any]]:
    """Canned items; macros are left to the normalizer's ratio derivation."""
    return [
        {
            "name": name,
            "quantity": quantity,
            "unit": unit,
            "calories": round(quantity * kcal_per_unit),
            "confidence": STUB_CONFIDENCE,
        }
        for name, quantity, unit, kcal_per_unit in STUB_FOODS
    ]


class StubVisionProvider:
    """
    Offline provider returning a fixed meal.

    Example:
        >>> raw = await StubVisionProvider().analyze_raw(request)
        >>> raw["candidates"][0]["content"]["parts"][0]["text"][:10]
        '{"items": '
    """

    name = "mock"

    def __init__(self) -> None:
        self.calls = 0

    async def analyze_raw(self, request: AnalysisRequest) -> Any:
        self.calls += 1
        text = json.dumps({"items": stub_items()}, ensure_ascii=False)
        return {"candidates": [{"content": {"parts": [{"text": text}]}}]}
