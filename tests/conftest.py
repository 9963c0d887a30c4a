"""
Shared fixtures for mealvision tests.
"""

import io
import json
from typing import Any, Callable, Dict, Iterator, List

import pytest
from PIL import Image

from mealvision.domain.meal.image.models import ProcessedImage
from mealvision.domain.meal.recognition.models import AnalysisRequest, FoodItem, FoodSource
from mealvision.domain.meal.recognition.prompts import build_analysis_request
from mealvision.infrastructure.composition.in_memory import InMemoryCompositionDatabase
from mealvision.metrics.core import registry


# ═══════════════════════════════════════════════════════════
# METRICS ISOLATION
# ═══════════════════════════════════════════════════════════


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    """Each test starts from an empty metrics registry."""
    registry.reset()
    yield
    registry.reset()


# ═══════════════════════════════════════════════════════════
# IMAGE FIXTURES
# ═══════════════════════════════════════════════════════════


def make_image_bytes(
    size: tuple = (64, 48), mode: str = "RGB", fmt: str = "JPEG"
) -> bytes:
    """Encode a solid-colour image in memory."""
    color: Any = (200, 120, 40, 128) if mode == "RGBA" else (200, 120, 40)
    if mode == "P":
        img = Image.new("RGB", size, (200, 120, 40)).convert("P")
    else:
        img = Image.new(mode, size, color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def sample_image(jpeg_bytes: bytes) -> ProcessedImage:
    """Small processed JPEG."""
    return ProcessedImage(
        data=jpeg_bytes,
        mime_type="image/jpeg",
        size=len(jpeg_bytes),
        width=64,
        height=48,
    )


@pytest.fixture
def sample_request(sample_image: ProcessedImage) -> AnalysisRequest:
    return build_analysis_request(sample_image, "ご飯と鶏むね肉")


# ═══════════════════════════════════════════════════════════
# DOMAIN FIXTURES
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def make_item() -> Callable[..., FoodItem]:
    """Factory for food items with sensible defaults."""

    def _make(**overrides: Any) -> FoodItem:
        values: Dict[str, Any] = {
            "name": "ご飯",
            "quantity": 150.0,
            "unit": "g",
            "calories": 250.0,
            "protein": 4.0,
            "fat": 0.5,
            "carbs": 55.0,
            "confidence": 0.8,
            "source": FoodSource.MODEL,
        }
        values.update(overrides)
        return FoodItem(**values)

    return _make


def _gemini_response(items: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Wrap items the way Gemini returns generated JSON text."""
    text = json.dumps({"items": items}, ensure_ascii=False)
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def jfct_rows() -> List[Dict[str, Any]]:
    """Composition table rows (per 100 g)."""
    return [
        {
            "food_code": "11220",
            "name_ja": "鶏むね肉",
            "energy_kcal": 108,
            "protein_g": 22.3,
            "fat_g": 1.5,
            "carbs_g": 0.1,
        },
        {
            "food_code": "01088",
            "name_ja": "ご飯（精白米）",
            "energy_kcal": 156,
            "protein_g": 2.5,
            "fat_g": 0.3,
            "carbs_g": 37.1,
        },
        {
            "食品番号": "17045",
            "食品名": "味噌汁",
            "エネルギー（kcal）": 25,
            "たんぱく質": 1.7,
            "脂質": 0.7,
            "炭水化物": 3.0,
        },
    ]


@pytest.fixture
def composition_db(jfct_rows: List[Dict[str, Any]]) -> InMemoryCompositionDatabase:
    return InMemoryCompositionDatabase.from_rows(jfct_rows)


@pytest.fixture
def gemini_response() -> Callable[[List[Dict[str, Any]]], Dict[str, Any]]:
    return _gemini_response


@pytest.fixture
def image_bytes() -> Callable[..., bytes]:
    """Factory encoding in-memory test images."""
    return make_image_bytes
