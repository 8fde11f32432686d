from __future__ import annotations

from dataclasses import dataclass

"""CanonicalRecord / ValidationWarning models for indicator-sync.

CanonicalRecord represents one source row after spreadsheet normalization,
independent of the layout of the workbook it came from. ValidationWarning
records a row (or sheet) the normalizer could not fully interpret.
"""

__all__ = [
    "CanonicalRecord",
    "ValidationWarning",
]


@dataclass(frozen=True)
class CanonicalRecord:
    """Logical representation of a single indicator row after normalization.

    ``indicator`` is always non-empty and trimmed; ``value`` is always a finite
    number (unparseable cells are coerced to 0 and reported as a warning).
    ``row_index`` is the 1-based row number inside the originating sheet.
    """
    site: str | None  # Facility / site name (None when the layout has no site column)
    indicator: str  # Source indicator name, trimmed
    value: float  # Finite numeric value
    period: str  # Reporting period (e.g. "202506", "2025Q1")
    org_unit: str  # Org unit id, synthesized from site when absent
    sheet_name: str  # Originating sheet
    row_index: int  # 1-based sheet row number


@dataclass(frozen=True)
class ValidationWarning:
    """A row or value that could not be interpreted.

    ``row_index`` is -1 for sheet-level warnings (e.g. header not found).
    """
    sheet_name: str
    row_index: int
    warning_type: str  # UPPER_SNAKE
    message: str
