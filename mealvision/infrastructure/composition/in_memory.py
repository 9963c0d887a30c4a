"""In-memory composition database for tests and offline runs."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from mealvision.domain.meal.nutrition.models import CompositionRecord


class InMemoryCompositionDatabase:
    """
    Case-insensitive substring search over a fixed record list.

    Results keep insertion order. Tracks searched terms so tests can
    assert which lookups happened.

    Example:
        >>> db = InMemoryCompositionDatabase.from_rows(
        ...     [{"food_code": "11220", "name_ja": "鶏むね肉", "energy_kcal": 108}]
        ... )
        >>> [r.name for r in await db.search("むね")]
        ['鶏むね肉']
    """

    def __init__(self, records: Iterable[CompositionRecord] = ()):
        self._records: List[CompositionRecord] = list(records)
        self.searched_terms: List[str] = []

    @classmethod
    def from_rows(cls, rows: Iterable[Dict[str, Any]]) -> InMemoryCompositionDatabase:
        """Build from raw table rows; unmappable rows are skipped."""
        records = [CompositionRecord.from_row(row) for row in rows]
        return cls(record for record in records if record is not None)

    async def search(self, term: str, limit: int = 5) -> List[CompositionRecord]:
        self.searched_terms.append(term)
        needle = term.strip().lower()
        if not needle:
            return []
        matches = [r for r in self._records if needle in r.name.lower()]
        return matches[:limit]

    async def load_all(self, limit: int = 5000) -> List[CompositionRecord]:
        return self._records[:limit]
