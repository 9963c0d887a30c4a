"""
Name matching against the food composition table.

Recognized names rarely equal table names ("鶏むね肉（皮なし）" vs
"鶏むね肉"), so lookups try a list of progressively looser search terms.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from mealvision.domain.meal.nutrition.models import CompositionRecord

SYNONYMS: Dict[str, Tuple[str, ...]] = {
    "マグロ": ("まぐろ", "鮪"),
    "刺身": ("さしみ",),
    "ラーメン": ("らーめん", "ramen"),
    "豚肉": ("ぶたにく", "ポーク", "pork"),
    "牛肉": ("ぎゅうにく", "ビーフ", "beef"),
    "鶏肉": ("とりにく", "チキン", "chicken"),
    "とうもろこし": ("コーン", "corn"),
    "白米": ("ご飯", "ごはん", "ライス", "rice"),
    "バター": ("butter",),
}

_BRACKET = re.compile(r"[（(]")
_SEPARATORS = re.compile(r"[・,、()（）【】\[\]]")
_CONNECTIVES = re.compile(r"又は|または|＆|&|の|と")
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH = 2


def fold_width(text: str) -> str:
    """Lowercase and fold full-width ASCII ("ＡＢＣ" → "abc")."""
    return unicodedata.normalize("NFKC", text).lower()


def expand_synonyms(term: str) -> List[str]:
    """Return the term, its folded form and any dictionary synonyms."""
    folded = fold_width(term)
    expansions: List[str] = [term, folded]
    for key, synonyms in SYNONYMS.items():
        if key in (term, folded):
            expansions.extend(synonyms)
    return expansions


def _tokens(text: str) -> List[str]:
    text = _SEPARATORS.sub(" ", text)
    text = _CONNECTIVES.sub(" ", text)
    return [t for t in _WHITESPACE.split(text) if len(t.strip()) >= MIN_TOKEN_LENGTH]


def create_search_terms(name: str, *, expand: bool = True) -> List[str]:
    """
    Ordered, de-duplicated search terms for a food name.

    Base terms come first: trimmed name, name without its parenthetical
    suffix, name without whitespace. Token splits and synonyms follow
    when ``expand`` is set.

    Example:
        >>> create_search_terms("鶏むね肉（皮なし）", expand=False)
        ['鶏むね肉（皮なし）', '鶏むね肉']
    """
    trimmed = name.strip()
    without_brackets = _BRACKET.split(trimmed, maxsplit=1)[0].strip()
    no_spaces = _WHITESPACE.sub("", trimmed)

    candidates: List[str] = [trimmed, without_brackets, no_spaces]
    if expand:
        tokens = _tokens(without_brackets)
        candidates.extend(tokens)
        for token in tokens:
            candidates.extend(expand_synonyms(token))

    terms: List[str] = []
    for term in candidates:
        if term and term not in terms:
            terms.append(term)
    return terms


def normalize_for_matching(text: str) -> str:
    text = fold_width(text)
    text = _SEPARATORS.sub(" ", text)
    text = _CONNECTIVES.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def score_record(record: CompositionRecord, terms: Iterable[str]) -> int:
    """Sum of the lengths of the terms contained in the record name."""
    name = normalize_for_matching(record.name)
    if not name:
        return 0
    score = 0
    for term in terms:
        normalized = normalize_for_matching(term)
        if normalized and normalized in name:
            score += len(normalized)
    return score


class CompositionIndex:
    """
    In-process snapshot of the composition table for scored matching.

    Used as a last resort when direct term lookups find nothing.
    """

    def __init__(self, records: Sequence[CompositionRecord]):
        self._records = list(records)

    def __len__(self) -> int:
        return len(self._records)

    def best_match(self, terms: Sequence[str]) -> Optional[CompositionRecord]:
        """Highest scoring record; table order breaks ties."""
        best: Optional[CompositionRecord] = None
        best_score = 0
        for record in self._records:
            score = score_record(record, terms)
            if score > best_score:
                best, best_score = record, score
        return best
