from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from ..models.canonical_record import CanonicalRecord
from ..models.config_models import MatchingOptions
from ..models.match_result import MatchResult, MatchStats, MatchType
from .match_strategies import MatchStrategy, default_strategies

"""Indicator matcher.

Resolves every vocabulary key to zero-or-one observed value:

1. build the observed index (indicator name -> value) from canonical records;
   duplicates resolved by policy ("last": later row overwrites, "max": highest
   value kept). Keys keep their first-insertion position either way.
2. for each vocabulary entry, in vocabulary order, apply the strategy cascade
   (exact, case-insensitive, partial, fuzzy) and stop at the first hit
3. unmatched keys become DEFAULT results with value 0

The output always has exactly one result per vocabulary key.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "DUPLICATE_POLICIES",
    "MatchReport",
    "build_observed_index",
    "match",
]

DUPLICATE_POLICIES = ("last", "max")


@dataclass(frozen=True)
class MatchReport:
    results: list[MatchResult]
    stats: MatchStats
    observed_count: int  # Distinct observed indicator names


def build_observed_index(
    records: Iterable[CanonicalRecord], policy: str = "last"
) -> dict[str, float]:
    """Index record values by indicator name.

    Raises:
        ValueError: unknown duplicate policy
    """
    if policy not in DUPLICATE_POLICIES:
        raise ValueError(f"unknown duplicate policy: {policy}")
    observed: dict[str, float] = {}
    for rec in records:
        key = rec.indicator
        if key in observed and policy == "max":
            observed[key] = max(observed[key], rec.value)
        else:
            observed[key] = rec.value
    return observed


def match(
    vocabulary: Mapping[str, str],
    records: Iterable[CanonicalRecord],
    options: MatchingOptions | None = None,
    strategies: Sequence[MatchStrategy] | None = None,
) -> MatchReport:
    """Match ``vocabulary`` against ``records``.

    Deterministic and side-effect free: identical inputs give identical output.
    """
    options = options or MatchingOptions()
    cascade = strategies if strategies is not None else default_strategies(options.fuzzy_threshold)
    observed = build_observed_index(records, options.duplicate_policy)

    results: list[MatchResult] = []
    for key, code in vocabulary.items():
        result: MatchResult | None = None
        for strategy in cascade:
            name = strategy.find(key, observed)
            if name is not None:
                result = MatchResult(
                    indicator_key=key,
                    backend_code=code,
                    value=observed[name],
                    match_type=strategy.match_type,
                    source_indicator_name=name,
                )
                break
        if result is None:
            result = MatchResult(
                indicator_key=key,
                backend_code=code,
                value=0.0,
                match_type=MatchType.DEFAULT,
            )
            logger.debug("no observed value for indicator=%s; defaulting to 0", key)
        elif result.match_type in (MatchType.PARTIAL, MatchType.FUZZY):
            logger.debug(
                "%s match indicator=%s source=%r value=%s",
                result.match_type.value,
                key,
                result.source_indicator_name,
                result.value,
            )
        results.append(result)

    stats = MatchStats.from_results(results)
    return MatchReport(results=results, stats=stats, observed_count=len(observed))
