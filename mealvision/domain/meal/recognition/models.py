"""
Domain models for food recognition.

Models for AI-powered food identification from photos, plus the
provider-neutral request sent to a vision model.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class FoodSource(str, Enum):
    """
    Provenance of a food item's values.

    Downstream UI shows it as a badge; the enrichment service uses it to
    decide whether values may be overwritten.
    """

    MODEL = "model"  # Estimated by the vision model
    DATABASE = "database"  # Verified composition table values
    FALLBACK = "fallback"  # Synthesized when the model output was unusable


class FoodItem(BaseModel):
    """
    Single food item recognized from a photo or estimated.

    Attributes:
        name: Display name (Japanese)
        quantity: Estimated quantity
        unit: Quantity unit (grams by default)
        calories: Energy in kcal
        protein: Protein in g
        fat: Fat in g
        carbs: Carbohydrates in g
        confidence: Recognition confidence (0.0 - 1.0)
        source: Provenance tag
        food_code: Composition table code (database items only)
        matched_name: Composition table name (database items only)

    Example:
        >>> item = FoodItem(
        ...     name="ご飯",
        ...     quantity=150,
        ...     calories=252,
        ...     protein=3.8,
        ...     fat=0.5,
        ...     carbs=55.7,
        ...     confidence=0.9,
        ... )
        >>> item.source
        <FoodSource.MODEL: 'model'>
    """

    model_config = ConfigDict(
        frozen=True,
        allow_inf_nan=False,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    name: str = Field(..., min_length=1, max_length=200, description="Display name")
    quantity: float = Field(100.0, ge=0, description="Estimated quantity")
    unit: str = Field("g", min_length=1, description="Quantity unit")
    calories: float = Field(..., ge=0, description="Energy in kcal")
    protein: float = Field(..., ge=0, description="Protein in g")
    fat: float = Field(..., ge=0, description="Fat in g")
    carbs: float = Field(..., ge=0, description="Carbohydrates in g")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Recognition confidence")
    source: FoodSource = Field(FoodSource.MODEL, description="Provenance")
    food_code: Optional[str] = Field(None, description="Composition table code")
    matched_name: Optional[str] = Field(None, description="Composition table name")

    @field_validator("name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Ensure not just whitespace."""
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace")
        return v.strip()

    @field_validator("confidence")
    @classmethod
    def round_confidence(cls, v: float) -> float:
        """Round to 2 decimal places."""
        return round(v, 2)


class NutritionTotals(BaseModel):
    """Summed nutrition values for a list of food items."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    calories: float = Field(0.0, ge=0)
    protein: float = Field(0.0, ge=0)
    fat: float = Field(0.0, ge=0)
    carbs: float = Field(0.0, ge=0)
    overall_confidence: float = Field(0.0, ge=0.0, le=1.0)


def new_analysis_id(provider: str) -> str:
    """Time-based analysis id, unique per call."""
    return f"{provider}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VisionAnalysisResult(BaseModel):
    """
    Complete food recognition result.

    Created once per analysis call and never mutated. Callers that need
    to attach a storage URL build a new value with ``with_image_url``.

    Attributes:
        items: Recognized or estimated food items (never empty)
        total_calories: Sum of item calories (whole kcal)
        total_protein: Sum of item protein (1 decimal)
        total_fat: Sum of item fat (1 decimal)
        total_carbs: Sum of item carbs (1 decimal)
        overall_confidence: Mean item confidence (2 decimals)
        provider: Backend that produced the result
        fallback: True if any non-model estimation path was used
        analysis_id: Opaque, time-based id
        processed_at: UTC timestamp
        image_url: Optional storage URL attached by the caller
    """

    model_config = ConfigDict(
        frozen=True,
        allow_inf_nan=False,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    items: List[FoodItem] = Field(..., min_length=1, description="Food items")
    total_calories: float = Field(0.0, ge=0)
    total_protein: float = Field(0.0, ge=0)
    total_fat: float = Field(0.0, ge=0)
    total_carbs: float = Field(0.0, ge=0)
    overall_confidence: float = Field(0.0, ge=0.0, le=1.0)
    provider: str = Field(..., min_length=1)
    fallback: bool = False
    analysis_id: str = Field(..., min_length=1)
    processed_at: datetime = Field(default_factory=_utcnow)
    image_url: Optional[str] = None

    def with_image_url(self, image_url: str) -> VisionAnalysisResult:
        """Return a copy carrying the storage URL."""
        return self.model_copy(update={"image_url": image_url})

    def matched_count(self) -> int:
        """Number of items backed by the composition database."""
        return sum(1 for item in self.items if item.source == FoodSource.DATABASE)


class AnalysisRequest(BaseModel):
    """
    Provider-neutral vision request.

    Built by ``build_analysis_request``; each provider adapter renders it
    into its own wire payload.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., min_length=1)
    image_base64: str = Field(..., min_length=1, repr=False)
    mime_type: str = Field(..., min_length=1)
    description: Optional[str] = Field(None, max_length=500)
    temperature: float = Field(0.2, ge=0.0, le=2.0)
    max_output_tokens: int = Field(512, gt=0)
    timeout_s: float = Field(20.0, gt=0)

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.image_base64}"
