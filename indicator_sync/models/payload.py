from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .match_result import MatchResult, MatchStats

"""ValueSetPayload / ImportSummary models for indicator-sync.

ValueSetPayload is the immutable hand-off to the upload side. ``to_dict``
renders the reporting backend's ``dataValueSets`` body; ImportSummary is what
the upload side reports back.
"""

__all__ = [
    "ValueSetPayload",
    "ImportSummary",
]


def _iso_z(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


def _json_number(value: float) -> int | float:
    # 85.0 -> 85 so integer counts are submitted as integers
    return int(value) if float(value).is_integer() else value


@dataclass(frozen=True)
class ValueSetPayload:
    data_set: str
    period: str
    org_unit: str
    category_option_combo: str
    attribute_option_combo: str
    values: tuple[MatchResult, ...]
    match_stats: MatchStats
    generated_at: datetime  # UTC
    metadata: dict[str, Any] = field(default_factory=dict)  # Provenance (source file, counts)

    def data_values(self, include_unmatched: bool = True) -> list[dict[str, Any]]:
        """Render ``dataValues`` entries (vocabulary order).

        When ``include_unmatched`` is False, entries resolved as DEFAULT are
        omitted instead of being submitted as explicit zeros.
        """
        out: list[dict[str, Any]] = []
        for r in self.values:
            if not include_unmatched and not r.matched:
                continue
            out.append(
                {
                    "dataElement": r.backend_code,
                    "period": self.period,
                    "orgUnit": self.org_unit,
                    "categoryOptionCombo": self.category_option_combo,
                    "attributeOptionCombo": self.attribute_option_combo,
                    "value": _json_number(r.value),
                    "comment": f"{r.indicator_key} ({r.match_type.value})",
                }
            )
        return out

    def to_dict(self, include_unmatched: bool = True) -> dict[str, Any]:
        """Render the full value-set body including match statistics."""
        return {
            "dataSet": self.data_set,
            "period": self.period,
            "orgUnit": self.org_unit,
            "completeDate": self.generated_at.date().isoformat(),
            "dataValues": self.data_values(include_unmatched),
            "matchStats": self.match_stats.to_dict(),
            "generatedAt": _iso_z(self.generated_at),
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class ImportSummary:
    """Import counts returned by the upload side (logged, not acted upon)."""
    imported: int = 0
    updated: int = 0
    ignored: int = 0
    deleted: int = 0
