"""Composition database factory."""

from __future__ import annotations

from typing import Optional

import structlog

from mealvision.config import Settings
from mealvision.domain.meal.nutrition.ports import CompositionDatabase
from mealvision.infrastructure.composition.supabase_database import (
    SupabaseCompositionDatabase,
)

logger = structlog.get_logger(__name__)


async def create_composition_database(settings: Settings) -> Optional[CompositionDatabase]:
    """Connect to Supabase, or return None when it is not configured.

    A None database makes the enrichment service pass results through.
    """
    url, key = settings.supabase_url, settings.supabase_key
    if not url or not key:
        logger.warning("Supabase not configured, nutrition enrichment disabled")
        return None

    return await SupabaseCompositionDatabase.connect(
        url,
        key,
        table=settings.composition_table,
    )
