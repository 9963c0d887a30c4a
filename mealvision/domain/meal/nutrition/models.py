"""
Nutrition domain models.

Composition table records and the macro-ratio approximation used when a
model reports calories without a macro breakdown.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

# Column aliases seen in composition table exports (English and Japanese headers).
FOOD_CODE_KEYS = ("food_code", "食品番号", "食品コード")
NAME_KEYS = ("name_ja", "食品名", "名称")
ENERGY_KEYS = ("energy_kcal", "エネルギー（kcal）", "エネルギー(kcal)", "エネルギー")
PROTEIN_KEYS = ("protein_g", "タンパク質", "たんぱく質", "たん白質")
FAT_KEYS = ("fat_g", "脂質")
CARBS_KEYS = ("carbs_g", "炭水化物")


class MacroRatios(BaseModel):
    """
    Share of calories attributed to each macronutrient.

    A documented approximation for display purposes, not clinical data:
    protein and carbs yield 4 kcal/g, fat 9 kcal/g.

    Example:
        >>> DEFAULT_MACRO_RATIOS.derive(200)
        (7.5, 5.6, 30.0)
    """

    model_config = ConfigDict(frozen=True)

    protein: float = Field(0.15, ge=0, le=1)
    fat: float = Field(0.25, ge=0, le=1)
    carbs: float = Field(0.60, ge=0, le=1)

    def protein_g(self, calories: float) -> float:
        return round(calories * self.protein / 4, 1)

    def fat_g(self, calories: float) -> float:
        return round(calories * self.fat / 9, 1)

    def carbs_g(self, calories: float) -> float:
        return round(calories * self.carbs / 4, 1)

    def derive(self, calories: float) -> tuple[float, float, float]:
        """Return (protein, fat, carbs) grams for the given calories."""
        return self.protein_g(calories), self.fat_g(calories), self.carbs_g(calories)


DEFAULT_MACRO_RATIOS = MacroRatios()


def _lookup(row: Dict[str, Any], keys: Sequence[str]) -> Any:
    """Get the first present key, falling back to a case-insensitive match."""
    for key in keys:
        if key in row:
            return row[key]
        lower = key.lower()
        for candidate in row:
            if isinstance(candidate, str) and candidate.lower() == lower:
                return row[candidate]
    return None


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


class CompositionRecord(BaseModel):
    """
    One row of the food composition table.

    Values are per 100 units (usually grams) of edible portion. Any value
    may be missing in the source table.

    Attributes:
        food_code: Table code (e.g. "11220")
        name: Canonical Japanese name
        energy_kcal: Energy per 100 g
        protein_g: Protein per 100 g
        fat_g: Fat per 100 g
        carbs_g: Carbohydrates per 100 g

    Example:
        >>> record = CompositionRecord.from_row(
        ...     {"food_code": "11220", "name_ja": "鶏むね肉", "energy_kcal": 108}
        ... )
        >>> record.energy_kcal
        108.0
    """

    model_config = ConfigDict(frozen=True)

    food_code: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    energy_kcal: Optional[float] = Field(None, ge=0)
    protein_g: Optional[float] = Field(None, ge=0)
    fat_g: Optional[float] = Field(None, ge=0)
    carbs_g: Optional[float] = Field(None, ge=0)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> Optional[CompositionRecord]:
        """Map a raw table row; rows without code or name map to None."""
        food_code = _lookup(row, FOOD_CODE_KEYS)
        name = _lookup(row, NAME_KEYS)
        if food_code in (None, "") or name in (None, ""):
            return None

        def non_negative(keys: Sequence[str]) -> Optional[float]:
            value = _to_float(_lookup(row, keys))
            return value if value is not None and value >= 0 else None

        return cls(
            food_code=str(food_code),
            name=str(name),
            energy_kcal=non_negative(ENERGY_KEYS),
            protein_g=non_negative(PROTEIN_KEYS),
            fat_g=non_negative(FAT_KEYS),
            carbs_g=non_negative(CARBS_KEYS),
        )
