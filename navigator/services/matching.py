# This project was developed with assistance from AI tools.
"""Keyword scoring for FAQ and navigation lookup.

Pure functions: a query is scored against every keyword of every item and
the best-scoring item above a threshold wins. Each keyword contributes at
most once, through the first rule that applies to it:

  1. query equals keyword                          -> +100
  2. query contains keyword, or keyword contains query -> +50
  3. multi-word keyword, every word fuzzy-matches a query content word
                                                   -> +30 per keyword word
  4. single-word keyword fuzzy-matches a query content word -> +10

"Fuzzy" means substring containment in either direction. Content words are
whitespace tokens longer than two characters that are not stop words.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)

EXACT_SCORE = 100
PHRASE_SCORE = 50
MULTI_WORD_SCORE = 30  # per word of the keyword
SINGLE_WORD_SCORE = 10

# Uzbek grammatical particles ignored when building content words
NAVIGATION_STOP_WORDS: frozenset[str] = frozenset(
    {"uchun", "bilan", "dan", "ga", "ni", "ning", "lar", "chi"}
)
# FAQ queries are phrased as questions, so question words are dropped too
FAQ_STOP_WORDS: frozenset[str] = NAVIGATION_STOP_WORDS | {"nima", "qanday"}

_MIN_CONTENT_WORD_LENGTH = 3


class Matchable(Protocol):
    keywords: Sequence[str]


ItemT = TypeVar("ItemT", bound=Matchable)


@dataclass(frozen=True)
class MatchResult(Generic[ItemT]):
    """Best-scoring item for a query."""

    item: ItemT
    score: int
    matched_keywords: list[str] = field(default_factory=list)
    matched: bool = True


def normalize_query(query: str) -> str:
    return query.lower().strip()


def content_words(query: str, stop_words: Iterable[str] = NAVIGATION_STOP_WORDS) -> list[str]:
    """Split a normalised query into the words used for fuzzy comparison."""
    stops = frozenset(stop_words)
    return [
        word
        for word in query.split()
        if len(word) >= _MIN_CONTENT_WORD_LENGTH and word not in stops
    ]


def _fuzzy(word: str, query_words: list[str]) -> bool:
    return any(qw in word or word in qw for qw in query_words)


def score_keyword(query: str, keyword: str, query_words: list[str]) -> int:
    """Score one keyword against a normalised query.

    Args:
        query: Lower-cased, trimmed query.
        keyword: Raw keyword from the dataset.
        query_words: Content words of ``query``.

    Returns:
        The score of the highest-priority rule that fires, or 0.
    """
    keyword_lower = keyword.lower()
    if not keyword_lower.strip():
        return 0

    if query == keyword_lower:
        return EXACT_SCORE

    if keyword_lower in query or query in keyword_lower:
        return PHRASE_SCORE

    keyword_words = keyword_lower.split()
    if len(keyword_words) > 1:
        if all(_fuzzy(kw, query_words) for kw in keyword_words):
            return MULTI_WORD_SCORE * len(keyword_words)
        return 0

    if _fuzzy(keyword_words[0], query_words):
        return SINGLE_WORD_SCORE
    return 0


def score_item(
    query: str, item: Matchable, query_words: list[str]
) -> tuple[int, list[str]]:
    """Sum keyword scores for one item; return (score, matched keywords)."""
    total = 0
    matched: list[str] = []
    for keyword in item.keywords:
        points = score_keyword(query, keyword, query_words)
        if points:
            total += points
            matched.append(keyword)
    return total, matched


def best_match(
    query: str,
    items: Iterable[ItemT],
    min_score: int,
    stop_words: Iterable[str] = NAVIGATION_STOP_WORDS,
) -> MatchResult[ItemT] | None:
    """Return the highest-scoring item, or None if nothing reaches ``min_score``.

    Ties keep the item seen first. Scores of zero never match, whatever the
    threshold.
    """
    normalized = normalize_query(query)
    query_words = content_words(normalized, stop_words)

    best: MatchResult[ItemT] | None = None
    for item in items:
        score, matched = score_item(normalized, item, query_words)
        if score <= 0 or score < min_score:
            continue
        if best is None or score > best.score:
            best = MatchResult(item=item, score=score, matched_keywords=matched)

    return best
