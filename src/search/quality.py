"""
Relevance heuristic used to arbitrate between search engines.

The score is a cheap lexical estimate in [0, 1]: how many meaningful
query terms (and adjacent-term phrases) appear in each result's title,
snippet and URL, minus a penalty for off-topic category signals. It
picks between engines; it is not a ranking signal.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from src.search.models import SearchResult
from src.utils.logging import get_logger

logger = get_logger(__name__)

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "are", "was", "were", "be", "been", "have",
        "has", "had", "do", "does", "did", "will", "would", "could", "should",
        "may", "might", "must", "can", "group", "members",
    }
)  # fmt: skip

OFF_TOPIC_PATTERNS = (
    "recipe", "cooking", "food", "restaurant", "menu",
    "weather", "temperature", "forecast",
    "shopping", "sale", "price", "buy", "store",
    "movie", "film", "tv show", "entertainment",
    "sports", "game", "score", "team",
    "fashion", "clothing", "style",
    "travel", "hotel", "flight", "vacation",
    "car", "vehicle", "automotive",
    "real estate", "property", "house", "apartment",
)  # fmt: skip

NEUTRAL_SCORE = 0.5
PHRASE_BONUS = 0.3
OFF_TOPIC_PENALTY = 0.2

_NON_WORD_RE = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class ResultScore:
    """Per-result breakdown."""

    score: float
    term_hits: int
    phrase_hits: int
    penalty: float


class QualityScorer:
    """Scores a result set against the query that produced it."""

    def extract_terms(self, query: str) -> list[str]:
        """Lower-cased query terms longer than two characters, minus stop words."""
        words = _NON_WORD_RE.sub(" ", query.lower()).split()
        return [word for word in words if len(word) > 2 and word not in STOP_WORDS]

    def build_phrases(self, terms: Sequence[str]) -> list[str]:
        """Adjacent bigrams, plus the leading trigram for three or more terms."""
        if len(terms) < 2:
            return []
        phrases = [f"{terms[i]} {terms[i + 1]}" for i in range(len(terms) - 1)]
        if len(terms) >= 3:
            phrases.append(" ".join(terms[:3]))
        return phrases

    def score_result(self, result: SearchResult, terms: Sequence[str]) -> ResultScore:
        """Score one result. terms must be non-empty."""
        text = f"{result.title} {result.description} {result.url}".lower()

        term_hits = sum(1 for term in terms if term in text)
        phrase_hits = sum(1 for phrase in self.build_phrases(terms) if phrase in text)
        penalty = OFF_TOPIC_PENALTY * sum(1 for pattern in OFF_TOPIC_PATTERNS if pattern in text)

        base = min(1.0, term_hits / len(terms) + PHRASE_BONUS * phrase_hits)
        return ResultScore(
            score=max(0.0, base - penalty),
            term_hits=term_hits,
            phrase_hits=phrase_hits,
            penalty=penalty,
        )

    def score(self, results: Sequence[SearchResult], query: str) -> float:
        """Mean per-result relevance.

        Args:
            results: Result set from one engine.
            query: The query that produced it.

        Returns:
            0.0 for an empty set, 0.5 when the query has no meaningful
            terms, otherwise the mean per-result score.
        """
        if not results:
            return 0.0

        terms = self.extract_terms(query)
        if not terms:
            return NEUTRAL_SCORE

        total = 0.0
        for result in results:
            breakdown = self.score_result(result, terms)
            logger.debug(
                "Result scored",
                title=result.title[:50],
                score=round(breakdown.score, 2),
                term_hits=breakdown.term_hits,
                term_count=len(terms),
                phrase_hits=breakdown.phrase_hits,
                penalty=round(breakdown.penalty, 2),
            )
            total += breakdown.score

        return total / len(results)
