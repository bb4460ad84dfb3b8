"""Lexical fuzzy matching over short strings such as definition names."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar


T = TypeVar("T")

INDEL_COST = 0.5


@dataclass(frozen=True)
class FuzzyMatch(Generic[T]):
    item: T
    score: float


def weighted_levenshtein(a: str, b: str) -> float:
    """Edit distance with insertions/deletions costing 0.5 and substitutions 1."""
    previous = [j * INDEL_COST for j in range(len(b) + 1)]
    for i in range(1, len(a) + 1):
        current = [i * INDEL_COST] + [0.0] * len(b)
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            current[j] = min(
                previous[j] + INDEL_COST,
                current[j - 1] + INDEL_COST,
                previous[j - 1] + cost,
            )
        previous = current
    return previous[len(b)]


def fuzzy_score(term: str, content: str) -> float:
    """Similarity in [0, 1]; 1 means equal ignoring case."""
    term, content = term.lower(), content.lower()
    longest = max(len(term), len(content))
    if longest == 0:
        return 1.0
    return 1 - weighted_levenshtein(term, content) / longest


def fuzzy_top_n(
    term: str,
    items: Sequence[str],
    n: int,
    min_score: float | None = None,
) -> list[FuzzyMatch[str]]:
    """Best ``n`` items by fuzzy score, ties kept in input order."""
    matches = [FuzzyMatch(item, fuzzy_score(term, item)) for item in items]
    if min_score is not None:
        matches = [m for m in matches if m.score >= min_score]
    matches.sort(key=lambda m: m.score, reverse=True)
    return matches[:n]
