from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

"""RawWorkbook model for indicator-sync.

A RawWorkbook is the library-independent view of a spreadsheet file: an ordered
sequence of named sheets, each an ordered sequence of rows of raw cells. The
reader builds it from pandas DataFrames; the normalizer only ever sees this
immutable structure.
"""

__all__ = [
    "Cell",
    "RawSheet",
    "RawWorkbook",
]

Cell = str | int | float | datetime | None


@dataclass(frozen=True)
class RawSheet:
    """A single worksheet as raw rows (no header interpretation)."""
    name: str
    rows: tuple[tuple[Cell, ...], ...]

    @classmethod
    def from_rows(cls, name: str, rows: Iterable[Sequence[Cell]]) -> RawSheet:
        return cls(name=name, rows=tuple(tuple(r) for r in rows))

    def __len__(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class RawWorkbook:
    """Ordered collection of sheets read from one source file."""
    sheets: tuple[RawSheet, ...]

    @classmethod
    def from_dict(cls, sheets: dict[str, Iterable[Sequence[Cell]]]) -> RawWorkbook:
        """Build a workbook from ``{sheet_name: rows}`` preserving dict order."""
        return cls(sheets=tuple(RawSheet.from_rows(n, rows) for n, rows in sheets.items()))

    @property
    def sheet_names(self) -> list[str]:
        return [s.name for s in self.sheets]

    @property
    def total_rows(self) -> int:
        return sum(len(s) for s in self.sheets)
