"""
Unit tests for composition table name matching.
"""

from mealvision.domain.meal.nutrition.matching import (
    CompositionIndex,
    create_search_terms,
    expand_synonyms,
    score_record,
)
from mealvision.domain.meal.nutrition.models import CompositionRecord


def _record(code: str, name: str) -> CompositionRecord:
    return CompositionRecord(food_code=code, name=name, energy_kcal=100)


class TestCreateSearchTerms:
    """Ordered, de-duplicated search terms."""

    def test_base_terms_in_order(self) -> None:
        terms = create_search_terms(" 鶏むね肉 （皮なし）", expand=False)

        assert terms == ["鶏むね肉 （皮なし）", "鶏むね肉", "鶏むね肉（皮なし）"]

    def test_parenthetical_stripped_second(self) -> None:
        terms = create_search_terms("鶏むね肉（皮なし）")

        assert terms[:2] == ["鶏むね肉（皮なし）", "鶏むね肉"]

    def test_ascii_parenthesis(self) -> None:
        assert create_search_terms("ご飯(大盛り)", expand=False)[1] == "ご飯"

    def test_tokens_and_synonyms_follow_base_terms(self) -> None:
        terms = create_search_terms("白米・鶏肉")

        assert terms[0] == "白米・鶏肉"
        assert "白米" in terms
        assert "ご飯" in terms
        assert "チキン" in terms
        assert terms.index("白米") > 0

    def test_no_duplicates(self) -> None:
        terms = create_search_terms("ご飯")

        assert len(terms) == len(set(terms))

    def test_full_width_folded(self) -> None:
        assert "butter" in expand_synonyms("ＢＵＴＴＥＲ")
        assert "butter" in expand_synonyms("バター")


class TestCompositionIndex:
    """Scored matching over a table snapshot."""

    def test_best_match_by_score(self) -> None:
        index = CompositionIndex(
            [_record("1", "鶏肉"), _record("2", "鶏むね肉 皮なし 焼き")]
        )

        match = index.best_match(["鶏むね肉", "皮なし"])

        assert match is not None
        assert match.food_code == "2"

    def test_no_match(self) -> None:
        index = CompositionIndex([_record("1", "鶏肉")])

        assert index.best_match(["ラーメン"]) is None

    def test_score_counts_term_length(self) -> None:
        assert score_record(_record("1", "鶏むね肉"), ["むね", "鶏"]) == 3

    def test_tie_keeps_table_order(self) -> None:
        index = CompositionIndex([_record("1", "ご飯 大盛り"), _record("2", "ご飯 小盛り")])

        match = index.best_match(["ご飯"])

        assert match is not None
        assert match.food_code == "1"
