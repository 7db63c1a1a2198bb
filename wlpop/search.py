"""Candidate filtering and ranking.

Two policies share the `CandidateFilter` interface:

- `SubstringFilter` keeps the candidates whose primary text contains the
  query, in their source order (clipboard history).
- `FuzzyFilter` scores both text fields of each candidate, adds a bonus for
  frequently used entries and sorts by descending score (launcher).

Selection is tracked by row number while the list is rebuilt on every key
stroke, `resolve_index` maps a row back to its candidate.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from .constants import CONTAINS_SCORE, EXACT_SCORE, PREFIX_BASE_SCORE, USAGE_BONUS
from .models import Candidate

__all__ = [
    "CandidateFilter",
    "FuzzyFilter",
    "SubstringFilter",
    "UsageCounter",
    "fuzzy_match",
    "fuzzy_score",
]


def fuzzy_match(query: str, text: str) -> tuple[int, int] | None:
    """Score `text` against `query`, None when it does not match at all.

    Tiers, case-insensitive: exact match, prefix (shorter queries score
    higher), substring, then in-order subsequence where each matched
    character is worth ten times the current run of consecutive matches.

    Returns:
        ``(score, raw)``: `score` is kept inside its tier so the tiers never
        overlap, `raw` is the unbounded value ordering equal scores
    """
    if not query:
        return 0, 0
    q = query.casefold()
    t = text.casefold()

    if t == q:
        return EXACT_SCORE, EXACT_SCORE
    if t.startswith(q):
        raw = PREFIX_BASE_SCORE + (100 - len(q))
        return max(raw, CONTAINS_SCORE + 1), raw
    if q in t:
        return CONTAINS_SCORE, CONTAINS_SCORE

    score = 0
    run = 0
    position = 0
    for char in t:
        if position < len(q) and char == q[position]:
            position += 1
            run += 1
            score += run * 10
        else:
            run = 0
    if position < len(q):
        return None
    return min(score, CONTAINS_SCORE - 1), score


def fuzzy_score(query: str, text: str) -> int | None:
    """Return the tier bounded score of `fuzzy_match`."""
    match = fuzzy_match(query, text)
    return None if match is None else match[0]


class UsageCounter(Counter):
    """Launch counts keyed by primary text, kept for the daemon lifetime."""

    def record(self, candidate: Candidate) -> None:
        """Count one more use of `candidate` and update its counter."""
        self[candidate.primary_text] += 1
        candidate.usage_count = self[candidate.primary_text]

    def stamp(self, candidates: Iterable[Candidate]) -> None:
        """Copy the known counts onto freshly loaded candidates."""
        for candidate in candidates:
            candidate.usage_count = self.get(candidate.primary_text, 0)


class CandidateFilter:
    """Base filter: no filtering, optional result cap."""

    def __init__(self, limit: int | None = None) -> None:
        """Initialize the filter.

        Args:
            limit: maximum number of rows returned by `visible`
        """
        self.limit = limit

    def apply(self, candidates: Sequence[Candidate], query: str) -> list[Candidate]:
        """Return the candidates matching `query`, best first."""
        return list(candidates)

    def visible(self, candidates: Sequence[Candidate], query: str) -> list[Candidate]:
        """Return the rows to display (`apply` truncated to `limit`)."""
        result = self.apply(candidates, query)
        if self.limit:
            return result[: self.limit]
        return result

    def resolve_index(self, candidates: Sequence[Candidate], query: str, ordinal: int) -> Candidate | None:
        """Return the candidate displayed at row `ordinal` for `query`."""
        if ordinal < 0:
            return None
        rows = self.visible(candidates, query)
        return rows[ordinal] if ordinal < len(rows) else None


class SubstringFilter(CandidateFilter):
    """Case-insensitive substring match on the primary text, order preserved."""

    def apply(self, candidates: Sequence[Candidate], query: str) -> list[Candidate]:
        needle = query.casefold()
        if not needle:
            return list(candidates)
        return [c for c in candidates if needle in c.primary_text.casefold()]


class FuzzyFilter(CandidateFilter):
    """Scored match on both text fields with a usage frequency bonus."""

    def rank(self, candidate: Candidate, query: str) -> tuple[int, int] | None:
        """Return the ``(score, raw)`` sort key of `candidate`, None if it does not match."""
        matches = []
        primary = fuzzy_match(query, candidate.primary_text)
        if primary is not None:
            matches.append(primary)
        secondary = fuzzy_match(query, candidate.secondary_text)
        if secondary is not None:
            matches.append((secondary[0] // 2, secondary[1] // 2))
        if not matches:
            return None
        score, raw = max(matches)
        bonus = USAGE_BONUS * candidate.usage_count
        return score + bonus, raw + bonus

    def score(self, candidate: Candidate, query: str) -> int | None:
        """Return the ranking score of `candidate`, None if it does not match."""
        rank = self.rank(candidate, query)
        return None if rank is None else rank[0]

    def apply(self, candidates: Sequence[Candidate], query: str) -> list[Candidate]:
        if not query:
            return list(candidates)
        ranked = []
        for candidate in candidates:
            rank = self.rank(candidate, query)
            if rank is not None:
                ranked.append((rank, candidate))
        ranked.sort(key=lambda item: item[0], reverse=True)
        return [candidate for _, candidate in ranked]
