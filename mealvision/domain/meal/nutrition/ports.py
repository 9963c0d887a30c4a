"""Port (interface) for food composition databases."""

from typing import List, Protocol, runtime_checkable

from mealvision.domain.meal.nutrition.models import CompositionRecord


@runtime_checkable
class CompositionDatabase(Protocol):
    """
    Read-only, case-insensitive name search over a composition table.

    Implementations:
    - Supabase-hosted JFCT table (production)
    - In-memory table (tests, offline runs)
    """

    async def search(self, term: str, limit: int = 5) -> List[CompositionRecord]:
        """
        Search records whose name contains ``term``.

        Args:
            term: Search term (substring, case-insensitive)
            limit: Maximum candidates, ordered by the database's own relevance

        Returns:
            Ranked candidate records (possibly empty)

        Raises:
            CompositionDatabaseError: If the lookup fails
        """
        ...

    async def load_all(self, limit: int = 5000) -> List[CompositionRecord]:
        """
        Load up to ``limit`` records for in-process scored matching.

        Raises:
            CompositionDatabaseError: If the load fails
        """
        ...
