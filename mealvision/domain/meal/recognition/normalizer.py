"""
Response normalizer.

Turns an opaque vision-provider response into FoodItem objects. Models
drift from the requested schema (prose around JSON, renamed fields,
strings instead of numbers), so every stage is an ordered list of
strategies tried in sequence: adding an accepted shape means appending a
strategy, not rewriting the parser.

Pure and deterministic: identical input gives identical output.
"""

from __future__ import annotations

import json
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

import structlog

from mealvision.domain.meal.nutrition.models import DEFAULT_MACRO_RATIOS, MacroRatios
from mealvision.domain.meal.recognition import fallback
from mealvision.domain.meal.recognition.models import FoodItem, FoodSource

logger = structlog.get_logger(__name__)

DEFAULT_CONFIDENCE = 0.6
DEFAULT_QUANTITY = 100.0
DEFAULT_UNIT = "g"
DEFAULT_ITEM_NAME = "不明な食品"

NAME_KEYS = ("name", "food", "food_name", "label", "display_name", "食品名", "料理名")
QUANTITY_KEYS = (
    "quantity",
    "amount",
    "portion",
    "quantity_g",
    "grams",
    "weight",
    "weight_g",
    "量",
)
UNIT_KEYS = ("unit", "units", "単位")
CALORIES_KEYS = (
    "calories",
    "calories_kcal",
    "kcal",
    "energy_kcal",
    "energy",
    "nutrition.kcal",
    "nutrition.calories",
    "nutrients.calories",
    "nutrients.kcal",
    "カロリー",
)
PROTEIN_KEYS = ("protein", "protein_g", "proteins", "nutrition.protein", "nutrients.protein")
FAT_KEYS = ("fat", "fat_g", "fats", "lipid", "nutrition.fat", "nutrients.fat")
CARBS_KEYS = (
    "carbs",
    "carbs_g",
    "carbohydrates",
    "carbohydrate",
    "carbohydrates_g",
    "nutrition.carbs",
    "nutrition.carbohydrates",
    "nutrients.carbs",
)
CONFIDENCE_KEYS = ("confidence", "score", "probability", "certainty")

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")
_TRAILING_UNIT = re.compile(r"\d\s*([^\d\s.,]+)\s*$")
_FENCED = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


@dataclass(frozen=True)
class NormalizedResponse:
    """
    Normalizer outcome.

    Attributes:
        items: Usable food items (never empty)
        fallback: True if a fallback path produced the items
        strategy: Parse strategy that succeeded, or the fallback path used
    """

    items: List[FoodItem]
    fallback: bool
    strategy: str


# ═══════════════════════════════════════════════════════════
# TEXT EXTRACTION (provider candidate/part structures)
# ═══════════════════════════════════════════════════════════


def _gemini_texts(raw: Any) -> Iterator[str]:
    if not isinstance(raw, dict):
        return
    for candidate in raw.get("candidates") or []:
        content = candidate.get("content") if isinstance(candidate, dict) else None
        parts = content.get("parts") if isinstance(content, dict) else None
        for part in parts or []:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                yield part["text"]


def _openai_texts(raw: Any) -> Iterator[str]:
    if not isinstance(raw, dict):
        return
    for choice in raw.get("choices") or []:
        message = choice.get("message") if isinstance(choice, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if isinstance(content, str):
            yield content
        elif isinstance(content, list):
            for part in content:
                if isinstance(part, dict) and isinstance(part.get("text"), str):
                    yield part["text"]


def _plain_texts(raw: Any) -> Iterator[str]:
    if isinstance(raw, bytes):
        yield raw.decode("utf-8", errors="replace")
    elif isinstance(raw, str):
        yield raw
    elif isinstance(raw, dict):
        for key in ("text", "output", "content"):
            if isinstance(raw.get(key), str):
                yield raw[key]


TEXT_EXTRACTORS: Tuple[Callable[[Any], Iterator[str]], ...] = (
    _gemini_texts,
    _openai_texts,
    _plain_texts,
)


# ═══════════════════════════════════════════════════════════
# PARSE STRATEGIES (strict → lenient)
# ═══════════════════════════════════════════════════════════


def _parse_strict(text: str) -> Any:
    return json.loads(text)


def _parse_fenced(text: str) -> Any:
    match = _FENCED.search(text)
    if not match:
        raise ValueError("no fenced block")
    return json.loads(match.group(1))


def _parse_braced(text: str) -> Any:
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end < start:
        raise ValueError("no JSON object")
    return json.loads(text[start : end + 1])


ParseStrategy = Tuple[str, Callable[[str], Any]]

PARSE_STRATEGIES: Tuple[ParseStrategy, ...] = (
    ("strict", _parse_strict),
    ("fenced", _parse_fenced),
    ("braced", _parse_braced),
)


# ═══════════════════════════════════════════════════════════
# ITEM LOCATORS (schema drift)
# ═══════════════════════════════════════════════════════════


def _key_locator(*path: str) -> Callable[[Any], Optional[list]]:
    def locate(payload: Any) -> Optional[list]:
        current = payload
        for key in path:
            if not isinstance(current, dict):
                return None
            current = current.get(key)
        return current if isinstance(current, list) else None

    return locate


def _self_locator(payload: Any) -> Optional[list]:
    return payload if isinstance(payload, list) else None


ITEM_LOCATORS: Tuple[Callable[[Any], Optional[list]], ...] = (
    _key_locator("items"),
    _key_locator("foods"),
    _key_locator("food_items"),
    _self_locator,
    _key_locator("result", "items"),
    _key_locator("data", "items"),
)


# ═══════════════════════════════════════════════════════════
# FIELD COERCION
# ═══════════════════════════════════════════════════════════


def _dig(raw: dict, path: str) -> Any:
    current: Any = raw
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def _first(raw: dict, keys: Sequence[str]) -> Any:
    for key in keys:
        value = _dig(raw, key)
        if value is not None:
            return value
    return None


def coerce_number(value: Any) -> Optional[float]:
    """
    Coerce heterogeneous model values to a finite float.

    Numbers pass through, strings yield their first number ("250 kcal",
    "２５０", "1,200"), objects with a ``value`` field are number carriers.
    Returns None when unparsable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, dict):
        return coerce_number(value.get("value"))
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = unicodedata.normalize("NFKC", value).replace(",", "")
        match = _NUMBER.search(text)
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def normalize_confidence(value: Optional[float], default: float = DEFAULT_CONFIDENCE) -> float:
    """
    Map a model confidence into [0, 1].

    Values above 1 are percentages; missing or non-positive values get
    the default.
    """
    if value is None or value <= 0:
        return default
    if value > 1:
        value = value / 100
    return round(min(value, 1.0), 2)


def _unit_of(raw_quantity: Any, raw_unit: Any) -> str:
    if isinstance(raw_unit, str) and raw_unit.strip():
        return raw_unit.strip()
    if isinstance(raw_quantity, dict) and isinstance(raw_quantity.get("unit"), str):
        unit = raw_quantity["unit"].strip()
        if unit:
            return unit
    if isinstance(raw_quantity, str):
        match = _TRAILING_UNIT.search(unicodedata.normalize("NFKC", raw_quantity))
        if match:
            return match.group(1)
    return DEFAULT_UNIT


# ═══════════════════════════════════════════════════════════
# NORMALIZER
# ═══════════════════════════════════════════════════════════


class ResponseNormalizer:
    """
    Normalize raw provider responses into food items.

    Stages:
    1. Extract text segments from the provider's candidate/part structure
    2. Parse each segment with the ordered parse strategies
    3. Locate the item array with the ordered item locators
    4. Coerce field aliases into FoodItem, deriving missing macros
    5. Fall back to description lines or one generic item

    Example:
        >>> normalizer = ResponseNormalizer()
        >>> outcome = normalizer.normalize('{"items":[{"name":"ご飯","calories":250}]}')
        >>> outcome.items[0].protein
        9.4
    """

    def __init__(
        self,
        macro_ratios: MacroRatios = DEFAULT_MACRO_RATIOS,
        default_confidence: float = DEFAULT_CONFIDENCE,
        parse_strategies: Sequence[ParseStrategy] = PARSE_STRATEGIES,
        item_locators: Sequence[Callable[[Any], Optional[list]]] = ITEM_LOCATORS,
    ):
        self.macro_ratios = macro_ratios
        self.default_confidence = default_confidence
        self.parse_strategies = tuple(parse_strategies)
        self.item_locators = tuple(item_locators)

    def normalize(self, raw: Any, description: Optional[str] = None) -> NormalizedResponse:
        """
        Normalize a raw response. Never raises, never returns zero items.

        Args:
            raw: Provider response (dict, list, str, bytes or None)
            description: User description, used by the fallback path

        Returns:
            NormalizedResponse with at least one item
        """
        for strategy, payload in self._iter_payloads(raw):
            items = self._items_from_payload(payload)
            if items:
                logger.debug("Parsed model response", strategy=strategy, items=len(items))
                return NormalizedResponse(items=items, fallback=False, strategy=strategy)

        items, strategy = fallback.estimate(description, self.macro_ratios)
        logger.warning(
            "Model output unusable, using fallback estimate",
            strategy=strategy,
            items=len(items),
        )
        return NormalizedResponse(items=items, fallback=True, strategy=strategy)

    def _iter_payloads(self, raw: Any) -> Iterator[Tuple[str, Any]]:
        if isinstance(raw, (dict, list)):
            yield "direct", raw

        for extract in TEXT_EXTRACTORS:
            for text in extract(raw):
                for name, parse in self.parse_strategies:
                    try:
                        payload = parse(text)
                    except (ValueError, RecursionError):
                        continue
                    yield name, payload
                    break

    def _items_from_payload(self, payload: Any) -> List[FoodItem]:
        for locate in self.item_locators:
            raw_items = locate(payload)
            if raw_items is None:
                continue
            items = [item for item in map(self.normalize_item, raw_items) if item]
            if items:
                return items
        return []

    def normalize_item(self, raw: Any) -> Optional[FoodItem]:
        """
        Coerce one raw item. Returns None when the item must be dropped.

        Missing calories become 0; calories present but unparsable drop
        the item.
        """
        if isinstance(raw, str):
            raw = {"name": raw}
        if not isinstance(raw, dict):
            return None

        raw_calories = _first(raw, CALORIES_KEYS)
        if raw_calories is None:
            calories = 0.0
        else:
            parsed = coerce_number(raw_calories)
            if parsed is None:
                return None
            calories = float(round(max(parsed, 0.0)))

        raw_name = _first(raw, NAME_KEYS)
        name = str(raw_name).strip() if raw_name is not None else ""
        name = (name or DEFAULT_ITEM_NAME)[:200]

        raw_quantity = _first(raw, QUANTITY_KEYS)
        quantity = coerce_number(raw_quantity)
        quantity = DEFAULT_QUANTITY if quantity is None else max(quantity, 0.0)

        protein = self._macro(raw, PROTEIN_KEYS, self.macro_ratios.protein_g, calories)
        fat = self._macro(raw, FAT_KEYS, self.macro_ratios.fat_g, calories)
        carbs = self._macro(raw, CARBS_KEYS, self.macro_ratios.carbs_g, calories)

        confidence = normalize_confidence(
            coerce_number(_first(raw, CONFIDENCE_KEYS)), self.default_confidence
        )

        try:
            return FoodItem(
                name=name,
                quantity=quantity,
                unit=_unit_of(raw_quantity, _first(raw, UNIT_KEYS)),
                calories=calories,
                protein=protein,
                fat=fat,
                carbs=carbs,
                confidence=confidence,
                source=FoodSource.MODEL,
            )
        except ValueError as e:
            logger.debug("Dropping invalid item", name=name, error=str(e))
            return None

    @staticmethod
    def _macro(
        raw: dict,
        keys: Sequence[str],
        derive: Callable[[float], float],
        calories: float,
    ) -> float:
        value = coerce_number(_first(raw, keys))
        if value is None:
            return derive(calories)
        return round(max(value, 0.0), 1)
