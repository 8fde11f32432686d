from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Protocol

from ..models.match_result import MatchType

"""Indicator name matching strategies.

Each strategy answers one question: which observed indicator name (if any)
supplies the value for a vocabulary key? Strategies are pure and stateless;
the matcher applies them in cascade order and stops at the first hit.

All strategies iterate ``observed`` in insertion order, so ties always resolve
to the first-encountered candidate.
"""

__all__ = [
    "MatchStrategy",
    "ExactStrategy",
    "CaseInsensitiveStrategy",
    "PartialStrategy",
    "FuzzyTokenStrategy",
    "tokenize",
    "token_overlap_score",
    "default_strategies",
]

_TOKEN_SPLIT = re.compile(r"[\s\-_]+")


class MatchStrategy(Protocol):
    match_type: MatchType

    def find(self, key: str, observed: Mapping[str, float]) -> str | None:
        """Return the observed name matching ``key`` or None."""
        ...


class ExactStrategy:
    match_type = MatchType.EXACT

    def find(self, key: str, observed: Mapping[str, float]) -> str | None:
        return key if key in observed else None


class CaseInsensitiveStrategy:
    match_type = MatchType.EXACT_CI

    def find(self, key: str, observed: Mapping[str, float]) -> str | None:
        target = key.lower()
        for name in observed:
            if name.lower() == target:
                return name
        return None


class PartialStrategy:
    """Substring containment in either direction (case-insensitive)."""
    match_type = MatchType.PARTIAL

    def find(self, key: str, observed: Mapping[str, float]) -> str | None:
        target = key.lower()
        for name in observed:
            candidate = name.lower()
            if not candidate:
                continue
            if target in candidate or candidate in target:
                return name
        return None


def tokenize(text: str) -> list[str]:
    """Lower-case tokens split on whitespace, hyphen and underscore (empty tokens dropped)."""
    return [t for t in _TOKEN_SPLIT.split(text.lower()) if t]


def token_overlap_score(target_tokens: Sequence[str], candidate_tokens: Sequence[str]) -> float:
    """Token overlap score.

    Every (target, candidate) token pair adds 2 when equal and 1 when one
    contains the other; the sum is divided by the longer token list length.

    >>> token_overlap_score(["tx", "new"], ["tx", "new", "patients"])
    1.3333333333333333
    """
    if not target_tokens or not candidate_tokens:
        return 0.0
    score = 0
    for t in target_tokens:
        for c in candidate_tokens:
            if t == c:
                score += 2
            elif t in c or c in t:
                score += 1
    return score / max(len(target_tokens), len(candidate_tokens))


class FuzzyTokenStrategy:
    """Best token-overlap candidate scoring strictly above ``threshold``."""
    match_type = MatchType.FUZZY

    def __init__(self, threshold: float = 0.5) -> None:
        self.threshold = threshold

    def find(self, key: str, observed: Mapping[str, float]) -> str | None:
        target_tokens = tokenize(key)
        best: str | None = None
        best_score = self.threshold
        for name in observed:
            score = token_overlap_score(target_tokens, tokenize(name))
            if score > best_score:
                best, best_score = name, score
        return best


def default_strategies(fuzzy_threshold: float = 0.5) -> tuple[MatchStrategy, ...]:
    """Exact -> case-insensitive -> partial -> fuzzy."""
    return (
        ExactStrategy(),
        CaseInsensitiveStrategy(),
        PartialStrategy(),
        FuzzyTokenStrategy(fuzzy_threshold),
    )
