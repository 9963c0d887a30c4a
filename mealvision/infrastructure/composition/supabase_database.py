"""Supabase-hosted food composition table (JFCT).

Uses the supabase-py async client. Table exports differ in their name
column (``name_ja``, ``食品名``, ``名称``), so each search tries the
configured columns in order.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence

import httpx
import structlog
from supabase import AsyncClient, PostgrestAPIError, acreate_client

from mealvision.domain.meal.nutrition.models import CompositionRecord
from mealvision.domain.shared.errors import CompositionDatabaseError

logger = structlog.get_logger(__name__)

DEFAULT_TABLE = "jfct_foods"
NAME_COLUMNS = ("name_ja", "食品名", "名称")

_QUERY_ERRORS = (PostgrestAPIError, httpx.HTTPError)


def _records(rows: Optional[Iterable[Any]]) -> List[CompositionRecord]:
    records = []
    for row in rows or []:
        if isinstance(row, dict):
            record = CompositionRecord.from_row(row)
            if record is not None:
                records.append(record)
    return records


class SupabaseCompositionDatabase:
    """
    CompositionDatabase adapter over a Supabase table.

    Example:
        >>> db = await SupabaseCompositionDatabase.connect(url, key)
        >>> records = await db.search("鶏むね肉")
        >>> records[0].food_code
        '11220'
    """

    def __init__(
        self,
        client: AsyncClient,
        table: str = DEFAULT_TABLE,
        name_columns: Sequence[str] = NAME_COLUMNS,
        rank_column: Optional[str] = None,
    ):
        """
        Args:
            client: Supabase async client
            table: Composition table name
            name_columns: Candidate name columns, tried in order
            rank_column: Optional column to order candidates by
        """
        self._client = client
        self.table = table
        self.name_columns = tuple(name_columns)
        self.rank_column = rank_column

    @classmethod
    async def connect(
        cls, url: str, key: str, table: str = DEFAULT_TABLE
    ) -> SupabaseCompositionDatabase:
        client = await acreate_client(url, key)
        return cls(client, table=table)

    async def search(self, term: str, limit: int = 5) -> List[CompositionRecord]:
        """
        ``ilike '%term%'`` on each name column until one yields records.

        A column whose query fails is logged and skipped.

        Raises:
            CompositionDatabaseError: If the query failed on every column
        """
        failures = 0
        for column in self.name_columns:
            query = self._client.table(self.table).select("*").ilike(column, f"%{term}%")
            if self.rank_column:
                query = query.order(self.rank_column)
            try:
                response = await query.limit(limit).execute()
            except _QUERY_ERRORS as e:
                failures += 1
                logger.warning(
                    "Composition query failed",
                    table=self.table,
                    column=column,
                    term=term,
                    error=str(e),
                )
                continue

            records = _records(response.data)
            if records:
                return records
            logger.debug("No composition hit", column=column, term=term)

        if failures == len(self.name_columns):
            raise CompositionDatabaseError(
                f"Supabase query failed for '{term}' on every name column"
            )
        return []

    async def load_all(self, limit: int = 5000) -> List[CompositionRecord]:
        try:
            response = await self._client.table(self.table).select("*").limit(limit).execute()
        except _QUERY_ERRORS as e:
            raise CompositionDatabaseError(
                f"Supabase full load of '{self.table}' failed: {e}"
            ) from e
        records = _records(response.data)
        logger.info("Composition table loaded", table=self.table, count=len(records))
        return records
