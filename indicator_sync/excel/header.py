from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..models.workbook import Cell

"""Header row detection and header -> field resolution.

Sheets arrive with title rows, blank rows and free-form column names. This
module finds the header row by keyword scan and resolves each canonical field
(site, indicator, value, period, org_unit, plus the data-quality metric
columns) to a column index exactly once per sheet.
"""

__all__ = [
    "HEADER_KEYWORDS",
    "FIELD_PATTERNS",
    "CORE_FIELDS",
    "METRIC_FIELDS",
    "POSITIONAL_COLUMNS",
    "HeaderMap",
    "locate_header_row",
    "build_header_map",
]

HEADER_KEYWORDS = re.compile(
    r"facility|site|clinic|query|indicator|value|result|count|total"
    r"|period|month|quarter|year|date"
    r"|org|unit|district|region"
    r"|score|completeness|timeliness",
    re.IGNORECASE,
)

CORE_FIELDS = ("site", "indicator", "value", "period", "org_unit")
METRIC_FIELDS = ("score", "completeness", "timeliness")

# (strict, loose) per field. Strict patterns are anchored and tested for all
# fields before any loose pattern, so "Facility" beats "Facility Total Count".
FIELD_PATTERNS: dict[str, tuple[re.Pattern[str], re.Pattern[str] | None]] = {
    "site": (
        re.compile(r"^(site|facility|health.*facility|clinic|hospital|hf)( name)?$"),
        re.compile(r"facility|site|clinic|hospital"),
    ),
    "indicator": (
        re.compile(r"^(query|indicator|measure|metric|data.*element)( name)?$"),
        re.compile(r"indicator|query|measure|metric"),
    ),
    "value": (
        re.compile(r"^(value|result|count|total|number|amount)$"),
        re.compile(r"value|count|total|result"),
    ),
    "period": (
        re.compile(r"^(period|month|quarter|year|date|time)$"),
        re.compile(r"period|month|quarter"),
    ),
    "org_unit": (
        re.compile(r"^(org.*unit|orgunit|district|region|area)$"),
        re.compile(r"org.?unit|district|region"),
    ),
    "score": (
        re.compile(r"^(score|quality.*score|dq.*score|overall.*score)$"),
        re.compile(r"score|quality"),
    ),
    "completeness": (
        re.compile(r"^(completeness|complete|data.*complete)$"),
        None,
    ),
    "timeliness": (
        re.compile(r"^(timeliness|timely|on.*time)$"),
        None,
    ),
}

# Last-resort column positions for fields the header did not name
POSITIONAL_COLUMNS = {"site": 0, "indicator": 1, "value": 2}


def _header_text(cell: Cell) -> str:
    if cell is None:
        return ""
    return str(cell).strip().lower()


@dataclass(frozen=True)
class HeaderMap:
    """Resolved column index per field for one sheet.

    ``sources`` records how each field was resolved: ``"header"`` or
    ``"position"``.
    """
    header_row: int  # 0-based index of the header row in the sheet
    labels: tuple[str, ...]  # Original header labels (stripped)
    columns: dict[str, int] = field(default_factory=dict)
    sources: dict[str, str] = field(default_factory=dict)
    detected: bool = True  # False when no header row matched (row 0 assumed)

    def index(self, field_name: str) -> int | None:
        return self.columns.get(field_name)

    def label(self, idx: int) -> str:
        return self.labels[idx] if 0 <= idx < len(self.labels) else ""


def locate_header_row(rows: Sequence[Sequence[Cell]], scan_rows: int = 10) -> int | None:
    """Return the index of the first of ``scan_rows`` rows holding a header keyword.

    Only string cells are considered. Returns None when no row qualifies.
    """
    for i, row in enumerate(rows[:scan_rows]):
        for cell in row:
            if isinstance(cell, str) and HEADER_KEYWORDS.search(cell):
                return i
    return None


def build_header_map(
    header_row: Sequence[Cell],
    header_index: int,
    fields: Sequence[str] = CORE_FIELDS,
    positional_fields: Sequence[str] = (),
    detected: bool = True,
) -> HeaderMap:
    """Resolve ``fields`` to column indexes from the header labels.

    1. strict pattern per field (fields in the given order, columns left to right)
    2. loose pattern for fields still unmapped
    3. positional fallback for ``positional_fields`` whose fixed column is free

    A column is claimed by at most one field.
    """
    texts = [_header_text(c) for c in header_row]
    labels = tuple("" if c is None else str(c).strip() for c in header_row)
    columns: dict[str, int] = {}
    sources: dict[str, str] = {}
    claimed: set[int] = set()

    for pass_idx in (0, 1):
        for name in fields:
            if name in columns:
                continue
            pattern = FIELD_PATTERNS[name][pass_idx]
            if pattern is None:
                continue
            for idx, text in enumerate(texts):
                if idx in claimed or not text:
                    continue
                if (pattern.match(text) if pass_idx == 0 else pattern.search(text)):
                    columns[name] = idx
                    sources[name] = "header"
                    claimed.add(idx)
                    break

    width = len(header_row)
    for name in positional_fields:
        if name in columns:
            continue
        pos = POSITIONAL_COLUMNS.get(name)
        if pos is None or pos in claimed or pos >= width:
            continue
        columns[name] = pos
        sources[name] = "position"
        claimed.add(pos)

    return HeaderMap(
        header_row=header_index,
        labels=labels,
        columns=columns,
        sources=sources,
        detected=detected,
    )
