"""
Nutrition Enrichment Service.

Replaces AI-estimated nutrition with verified food composition table
values where a match exists. Fails open: lookup problems never fail an
analysis.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Tuple

import structlog

from mealvision.domain.meal.nutrition.matching import CompositionIndex, create_search_terms
from mealvision.domain.meal.nutrition.models import CompositionRecord
from mealvision.domain.meal.nutrition.ports import CompositionDatabase
from mealvision.domain.meal.recognition.aggregator import recompute_result
from mealvision.domain.meal.recognition.models import (
    FoodItem,
    FoodSource,
    VisionAnalysisResult,
)
from mealvision.metrics.vision_analysis import record_enrichment

logger = structlog.get_logger(__name__)

DATABASE_CONFIDENCE_FLOOR = 0.9
MAX_CANDIDATES = 5


class NutritionEnrichmentService:
    """Cross-references recognized items with the composition database.

    Flow per item:
    1. Skip items already backed by the database
    2. Query each search term; first candidate of the first hit wins
    3. Fall back to scored matching over a one-time table snapshot
    4. Scale the per-100 g record by quantity and tag the item

    Lookups for all items run concurrently. Totals are recomputed.
    """

    def __init__(
        self,
        database: Optional[CompositionDatabase] = None,
        *,
        confidence_floor: float = DATABASE_CONFIDENCE_FLOOR,
        max_candidates: int = MAX_CANDIDATES,
        expand_synonyms: bool = True,
        full_scan: bool = True,
    ) -> None:
        """Initialize service.

        Args:
            database: Composition database; None disables enrichment
            confidence_floor: Minimum confidence of matched items
            max_candidates: Candidates requested per search term
            expand_synonyms: Add token splits and synonyms to search terms
            full_scan: Use scored snapshot matching when term lookups miss
        """
        self.database = database
        self.confidence_floor = confidence_floor
        self.max_candidates = max_candidates
        self.expand_synonyms = expand_synonyms
        self.full_scan = full_scan
        self._index: Optional[CompositionIndex] = None
        self._index_lock = asyncio.Lock()

    async def enrich(self, result: VisionAnalysisResult) -> VisionAnalysisResult:
        """Enrich every item of a result.

        Args:
            result: Normalized analysis result

        Returns:
            New result with enriched items and recomputed totals (the
            input itself when no database is configured)

        Example:
            >>> service = NutritionEnrichmentService(InMemoryCompositionDatabase(records))
            >>> enriched = await service.enrich(result)
            >>> enriched.items[0].source
            <FoodSource.DATABASE: 'database'>
        """
        if self.database is None:
            logger.warning(
                "Composition database not configured, skipping enrichment",
                analysis_id=result.analysis_id,
            )
            return result

        outcomes = await asyncio.gather(*(self._enrich_item(item) for item in result.items))
        items = [item for item, _ in outcomes]

        for outcome in ("matched", "unmatched", "error", "skipped"):
            record_enrichment(outcome, sum(1 for _, o in outcomes if o == outcome))

        enriched = recompute_result(result, items)
        logger.info(
            "Nutrition enrichment complete",
            analysis_id=result.analysis_id,
            items=len(items),
            matched=enriched.matched_count(),
            total_calories=enriched.total_calories,
        )
        return enriched

    async def enrich_item(self, item: FoodItem) -> FoodItem:
        """Enrich a single item (unchanged when no match is found)."""
        enriched, _ = await self._enrich_item(item)
        return enriched

    async def _enrich_item(self, item: FoodItem) -> Tuple[FoodItem, str]:
        if item.source == FoodSource.DATABASE:
            return item, "skipped"

        try:
            record = await self.find_best_match(item.name)
        except Exception as e:
            logger.warning("Composition lookup failed", name=item.name, error=str(e))
            return item, "error"

        if record is None:
            logger.info("No composition match", name=item.name)
            return item, "unmatched"

        logger.info(
            "Composition match",
            name=item.name,
            matched_name=record.name,
            food_code=record.food_code,
        )
        return self.apply_record(item, record), "matched"

    async def find_best_match(self, name: str) -> Optional[CompositionRecord]:
        """Best composition record for a food name, or None."""
        if self.database is None:
            return None
        terms = create_search_terms(name, expand=self.expand_synonyms)

        for term in terms:
            candidates = await self.database.search(term, limit=self.max_candidates)
            if candidates:
                return candidates[0]

        if not self.full_scan:
            return None
        index = await self._load_index()
        return index.best_match(terms) if index else None

    def apply_record(self, item: FoodItem, record: CompositionRecord) -> FoodItem:
        """Scale a per-100 g record to the item's quantity.

        Fields the record lacks keep the item's estimate.
        """
        multiplier = item.quantity / 100 if item.quantity and item.quantity > 0 else 1

        def scaled(per_100: Optional[float], estimate: float) -> float:
            if per_100 is None:
                return estimate
            return round(per_100 * multiplier, 1)

        return item.model_copy(
            update={
                "calories": scaled(record.energy_kcal, item.calories),
                "protein": scaled(record.protein_g, item.protein),
                "fat": scaled(record.fat_g, item.fat),
                "carbs": scaled(record.carbs_g, item.carbs),
                "source": FoodSource.DATABASE,
                "food_code": record.food_code,
                "matched_name": record.name,
                "confidence": max(item.confidence, self.confidence_floor),
            }
        )

    async def _load_index(self) -> Optional[CompositionIndex]:
        """Load the table snapshot once; a failed load is retried on the next lookup."""
        if self.database is None:
            return None
        async with self._index_lock:
            if self._index is not None:
                return self._index
            try:
                records: List[CompositionRecord] = await self.database.load_all()
            except Exception as e:
                logger.warning("Composition snapshot load failed", error=str(e))
                return None
            self._index = CompositionIndex(records)
            logger.info("Composition snapshot loaded", count=len(self._index))
            return self._index
