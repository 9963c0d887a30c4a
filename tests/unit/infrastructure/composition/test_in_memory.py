"""
Unit tests for the in-memory composition database.
"""

from mealvision.domain.meal.nutrition.models import CompositionRecord
from mealvision.domain.meal.nutrition.ports import CompositionDatabase
from mealvision.infrastructure.composition.in_memory import InMemoryCompositionDatabase


class TestInMemoryCompositionDatabase:
    """Substring search semantics."""

    async def test_substring_match(self, composition_db: InMemoryCompositionDatabase) -> None:
        records = await composition_db.search("ご飯")

        assert [r.food_code for r in records] == ["01088"]

    async def test_case_insensitive(self) -> None:
        db = InMemoryCompositionDatabase(
            [CompositionRecord(food_code="1", name="Butter", energy_kcal=700)]
        )

        assert len(await db.search("butter")) == 1

    async def test_limit_and_order(self) -> None:
        db = InMemoryCompositionDatabase(
            CompositionRecord(food_code=str(i), name=f"豚肉 {i}") for i in range(5)
        )

        records = await db.search("豚肉", limit=2)

        assert [r.food_code for r in records] == ["0", "1"]

    async def test_blank_term(self, composition_db: InMemoryCompositionDatabase) -> None:
        assert await composition_db.search("  ") == []

    async def test_tracks_terms(self, composition_db: InMemoryCompositionDatabase) -> None:
        await composition_db.search("鶏")
        await composition_db.search("米")

        assert composition_db.searched_terms == ["鶏", "米"]

    async def test_load_all(self, composition_db: InMemoryCompositionDatabase) -> None:
        assert len(await composition_db.load_all()) == 3
        assert len(await composition_db.load_all(limit=1)) == 1

    def test_from_rows_skips_unmappable(self, jfct_rows) -> None:
        db = InMemoryCompositionDatabase.from_rows(jfct_rows + [{"name_ja": "コードなし"}])

        assert len(db._records) == 3

    def test_satisfies_port(self, composition_db: InMemoryCompositionDatabase) -> None:
        assert isinstance(composition_db, CompositionDatabase)
