from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

"""Match result models for indicator-sync.

One MatchResult is produced per vocabulary entry, whether or not a source
indicator was found for it. MatchStats tallies the match types of a result set.
"""

__all__ = [
    "MatchType",
    "MatchResult",
    "MatchStats",
]


class MatchType(Enum):
    """Strategy that resolved a vocabulary key (DEFAULT = no match, value 0)."""
    EXACT = "exact"
    EXACT_CI = "exact_ci"
    PARTIAL = "partial"
    FUZZY = "fuzzy"
    DEFAULT = "default"


@dataclass(frozen=True)
class MatchResult:
    indicator_key: str  # Vocabulary key, e.g. "TX_NEW"
    backend_code: str  # Data element id
    value: float
    match_type: MatchType
    source_indicator_name: str | None = None  # Observed name that supplied the value

    @property
    def matched(self) -> bool:
        return self.match_type is not MatchType.DEFAULT


@dataclass(frozen=True)
class MatchStats:
    """Tally of match types.

    ``exact`` counts exact + case-insensitive matches, ``partial`` counts
    substring + fuzzy matches, ``none`` counts defaults.
    """
    exact: int = 0
    partial: int = 0
    none: int = 0
    by_type: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_results(cls, results: Iterable[MatchResult]) -> MatchStats:
        counts = Counter(r.match_type for r in results)
        return cls(
            exact=counts[MatchType.EXACT] + counts[MatchType.EXACT_CI],
            partial=counts[MatchType.PARTIAL] + counts[MatchType.FUZZY],
            none=counts[MatchType.DEFAULT],
            by_type={mt.value: counts[mt] for mt in MatchType},
        )

    @property
    def total(self) -> int:
        return self.exact + self.partial + self.none

    def to_dict(self) -> dict[str, object]:
        return {
            "exact": self.exact,
            "partial": self.partial,
            "none": self.none,
            "byType": dict(self.by_type),
        }
