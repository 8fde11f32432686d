from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from ..models.config_models import ReportCoordinates
from ..models.match_result import MatchResult, MatchStats
from ..models.payload import ValueSetPayload

"""Payload assembler.

Combines match results with the fixed report coordinates into a
ValueSetPayload. Match statistics are recomputed here from the results
themselves rather than taken from the matcher.
"""


def assemble(
    match_results: Iterable[MatchResult],
    coordinates: ReportCoordinates,
    provenance: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> ValueSetPayload:
    """Build the value-set payload for one file.

    Args:
        match_results: one result per vocabulary entry (order preserved)
        coordinates: data set / period / org unit / category combo
        provenance: extra metadata (source file, profile, counts)
        now: generation timestamp (UTC now when omitted)

    Returns:
        Immutable ValueSetPayload
    """
    values = tuple(match_results)
    generated_at = now or datetime.now(UTC)
    metadata: dict[str, Any] = dict(provenance or {})
    metadata["totalDataValues"] = len(values)
    metadata["matches"] = [
        {
            "indicator": r.indicator_key,
            "dataElement": r.backend_code,
            "matchType": r.match_type.value,
            "sourceIndicator": r.source_indicator_name,
        }
        for r in values
    ]
    return ValueSetPayload(
        data_set=coordinates.data_set,
        period=coordinates.period,
        org_unit=coordinates.org_unit,
        category_option_combo=coordinates.category_option_combo,
        attribute_option_combo=coordinates.effective_attribute_option_combo,
        values=values,
        match_stats=MatchStats.from_results(values),
        generated_at=generated_at,
        metadata=metadata,
    )
