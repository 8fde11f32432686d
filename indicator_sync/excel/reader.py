from __future__ import annotations

import math
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.workbook import Cell, RawSheet, RawWorkbook

"""Workbook reader.

Reads a source file into a RawWorkbook with no header interpretation: every
sheet is parsed with ``header=None`` so the normalizer can locate the header
row itself. ``.xlsx/.xlsm`` use openpyxl, ``.xls`` uses xlrd, ``.csv`` becomes
a single sheet named after the file stem.
"""

__all__ = [
    "ParseError",
    "EXCEL_SUFFIXES",
    "CSV_SUFFIXES",
    "read_workbook",
    "dataframe_to_sheet",
]

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xls"}
CSV_SUFFIXES = {".csv"}


class ParseError(Exception):
    """Raised when a workbook cannot be opened at all (corrupt / unreadable container)."""


def _to_cell(val: Any) -> Cell:
    if val is None:
        return None
    if isinstance(val, datetime):
        # pd.NaT is a datetime subclass
        if pd.isna(val):
            return None
        return val.to_pydatetime() if isinstance(val, pd.Timestamp) else val
    if isinstance(val, bool):
        return int(val)
    if isinstance(val, float):
        return None if math.isnan(val) else val
    if isinstance(val, (int, str)):
        return val
    # numpy scalars and other pandas types
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):  # pragma: no cover (array-like cell)
        pass
    if hasattr(val, "item"):
        return _to_cell(val.item())
    return str(val)


def dataframe_to_sheet(name: str, df: pd.DataFrame) -> RawSheet:
    """Convert a header-less DataFrame into a RawSheet (NaN -> None)."""
    rows = [[_to_cell(v) for v in raw] for raw in df.itertuples(index=False, name=None)]
    return RawSheet.from_rows(name, rows)


def read_workbook(path: Path) -> RawWorkbook:
    """Read a source file returning a RawWorkbook.

    Parameters
    ----------
    path: source file path

    Raises
    ------
    ParseError: file missing, unsupported type, or the container cannot be parsed
    """
    if not path.exists():
        raise ParseError(f"file not found: {path}")
    suffix = path.suffix.lower()

    if suffix in CSV_SUFFIXES:
        try:
            df = pd.read_csv(path, header=None, dtype=object, skip_blank_lines=False)
        except pd.errors.EmptyDataError:
            return RawWorkbook(sheets=(RawSheet(name=path.stem, rows=()),))
        except Exception as e:
            raise ParseError(f"failed to read {path.name}: {e}") from e
        return RawWorkbook(sheets=(dataframe_to_sheet(path.stem, df),))

    if suffix not in EXCEL_SUFFIXES:
        raise ParseError(f"unsupported file type: {path.name}")

    try:
        xls = pd.ExcelFile(path)
    except Exception as e:
        # BadZipFile / xlrd errors / missing engine all mean the container is unreadable
        raise ParseError(f"failed to open {path.name}: {e}") from e

    sheets: list[RawSheet] = []
    with xls:
        for name in xls.sheet_names:
            try:
                df = xls.parse(name, header=None)
            except Exception as e:
                raise ParseError(f"failed to parse sheet '{name}' of {path.name}: {e}") from e
            sheets.append(dataframe_to_sheet(str(name), df))
    return RawWorkbook(sheets=tuple(sheets))
