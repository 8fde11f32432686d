from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path

from ..models.canonical_record import CanonicalRecord, ValidationWarning
from ..models.config_models import ParsingOptions
from ..models.workbook import Cell, RawSheet, RawWorkbook
from .header import CORE_FIELDS, METRIC_FIELDS, HeaderMap, build_header_map, locate_header_row
from .reader import read_workbook

"""Spreadsheet normalizer.

Turns a RawWorkbook of unknown layout into canonical indicator records:

1. pick a sheet profile from the file name (known export signatures, else generic)
2. locate the header row in the first N rows of each sheet
3. resolve header labels to canonical fields once per sheet
4. extract / coerce each data row, recording a ValidationWarning for anything
   that could not be interpreted
5. emit one CanonicalRecord per valid row, tagged with sheet and row number

``normalize`` never raises for malformed content; only ``read_workbook`` raises
ParseError for unreadable containers.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "SheetProfile",
    "PROFILES",
    "GENERIC_PROFILE",
    "NormalizeResult",
    "select_profile",
    "normalize",
    "normalize_file",
    "parse_value",
    "format_period",
    "synthesize_org_unit",
]

# Labels used when a data-quality sheet carries metric columns instead of an indicator column
METRIC_LABELS = {
    "score": "Data Quality Score",
    "completeness": "Completeness Rate",
    "timeliness": "Timeliness Score",
}


@dataclass(frozen=True)
class SheetProfile:
    """How sheets of one known export type are parsed."""
    name: str
    signature: re.Pattern[str] | None  # Matched against the file name
    first_sheet_only: bool
    site_required: bool
    positional_fields: tuple[str, ...]
    metric_columns: bool = False  # Derive indicator/value from DQ metric columns


PROFILES: tuple[SheetProfile, ...] = (
    SheetProfile(
        name="hiv_indicators",
        signature=re.compile(r"hiv", re.IGNORECASE),
        first_sheet_only=True,
        site_required=False,
        positional_fields=("indicator", "value"),
    ),
    SheetProfile(
        name="direct_queries",
        signature=re.compile(r"direct[\s_-]*quer", re.IGNORECASE),
        first_sheet_only=True,
        site_required=True,
        positional_fields=("site", "indicator", "value"),
    ),
    SheetProfile(
        name="dq_sites",
        signature=re.compile(r"(^|[\s_-])dq([\s_-]|$)", re.IGNORECASE),
        first_sheet_only=True,
        site_required=True,
        positional_fields=("site",),
        metric_columns=True,
    ),
)

GENERIC_PROFILE = SheetProfile(
    name="generic",
    signature=None,
    first_sheet_only=False,
    site_required=False,
    positional_fields=("site", "indicator", "value"),
)


@dataclass(frozen=True)
class NormalizeResult:
    records: list[CanonicalRecord]
    warnings: list[ValidationWarning]
    profile: str
    header_maps: dict[str, HeaderMap]  # Per parsed sheet (diagnostics / inspect mode)


def select_profile(file_name_hint: str | None) -> SheetProfile:
    """Pick the first profile whose signature matches the file name (stem only)."""
    if file_name_hint:
        stem = Path(file_name_hint).stem
        for profile in PROFILES:
            if profile.signature is not None and profile.signature.search(stem):
                return profile
    return GENERIC_PROFILE


def _is_blank(cell: Cell) -> bool:
    return cell is None or (isinstance(cell, str) and cell.strip() == "")


def _cell(row: Sequence[Cell], idx: int | None) -> Cell:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def _text(cell: Cell) -> str:
    if cell is None:
        return ""
    if isinstance(cell, float) and cell.is_integer():
        return str(int(cell))
    return str(cell).strip()


def parse_value(cell: Cell) -> float | None:
    """Parse a numeric cell; returns None when the cell is empty or not numeric.

    Accepts ints / finite floats and strings such as ``" 1,234 "`` or ``"85%"``.
    """
    if cell is None or isinstance(cell, (datetime, date)):
        return None
    if isinstance(cell, bool):
        return float(cell)
    if isinstance(cell, (int, float)):
        val = float(cell)
        return val if math.isfinite(val) else None
    text = str(cell).strip().replace(",", "").replace(" ", "")
    if text.endswith("%"):
        text = text[:-1]
    if not text:
        return None
    try:
        val = float(text)
    except ValueError:
        return None
    return val if math.isfinite(val) else None


def format_period(cell: Cell, default: str) -> str:
    """Render a period cell as text; dates become ``YYYYMM``."""
    if _is_blank(cell):
        return default
    if isinstance(cell, (datetime, date)):
        return cell.strftime("%Y%m")
    return _text(cell)


def synthesize_org_unit(site: str | None, prefix: str = "MW", max_length: int = 10) -> str:
    """Deterministic org unit id from a site name.

    Non-alphanumerics become ``_``, upper-cased, truncated, then namespaced:
    ``"Kamuzu Central"`` -> ``"MW_KAMUZU_CEN"``. No site -> ``"MW_DEFAULT"``.
    """
    if not site or not site.strip():
        return f"{prefix}_DEFAULT"
    slug = re.sub(r"[^A-Za-z0-9]", "_", site).upper()
    return f"{prefix}_{slug[:max_length]}"


def _first_numeric(row: Sequence[Cell], hmap: HeaderMap) -> tuple[str, float] | None:
    claimed = set(hmap.columns.values())
    for idx in range(1, len(row)):
        if idx in claimed:
            continue
        val = parse_value(row[idx])
        if val is not None:
            return hmap.label(idx) or f"Metric_{idx}", val
    return None


def _normalize_sheet(
    sheet: RawSheet,
    profile: SheetProfile,
    options: ParsingOptions,
    default_period: str,
) -> tuple[list[CanonicalRecord], list[ValidationWarning], HeaderMap | None]:
    records: list[CanonicalRecord] = []
    warnings: list[ValidationWarning] = []
    if not sheet.rows:
        return records, warnings, None

    header_idx = locate_header_row(sheet.rows, options.header_scan_rows)
    detected = header_idx is not None
    if header_idx is None:
        header_idx = 0
        warnings.append(
            ValidationWarning(
                sheet_name=sheet.name,
                row_index=-1,
                warning_type="HEADER_NOT_FOUND",
                message=(
                    f"no header keyword in first {options.header_scan_rows} rows; "
                    "row 1 assumed to be the header"
                ),
            )
        )

    # Metric columns go first so "Total Score" resolves to score, not to the loose value pattern
    fields = METRIC_FIELDS + CORE_FIELDS if profile.metric_columns else CORE_FIELDS
    hmap = build_header_map(
        sheet.rows[header_idx],
        header_idx,
        fields=fields,
        positional_fields=profile.positional_fields,
        detected=detected,
    )
    for name, source in hmap.sources.items():
        if source == "position":
            warnings.append(
                ValidationWarning(
                    sheet_name=sheet.name,
                    row_index=-1,
                    warning_type="COLUMN_POSITIONAL_FALLBACK",
                    message=f"no header for '{name}'; using column {hmap.columns[name] + 1}",
                )
            )
    logger.debug(
        "sheet=%s profile=%s header_row=%d columns=%s",
        sheet.name,
        profile.name,
        header_idx + 1,
        hmap.columns,
    )

    for offset, row in enumerate(sheet.rows[header_idx + 1:]):
        row_no = header_idx + 2 + offset  # 1-based sheet row
        if all(_is_blank(c) for c in row):
            continue

        site_text = _text(_cell(row, hmap.index("site")))
        site = site_text or None
        if profile.site_required and site is None:
            warnings.append(
                ValidationWarning(sheet.name, row_no, "MISSING_SITE", "site is blank; row skipped")
            )
            continue

        indicator = _text(_cell(row, hmap.index("indicator")))
        raw_value = _cell(row, hmap.index("value"))
        if not indicator and profile.metric_columns:
            derived = None
            for metric in METRIC_FIELDS:
                cell = _cell(row, hmap.index(metric))
                if hmap.index(metric) is not None and not _is_blank(cell):
                    derived = (METRIC_LABELS[metric], cell)
                    break
            if derived is None:
                found = _first_numeric(row, hmap)
                if found is not None:
                    derived = found
            if derived is not None:
                indicator, raw_value = derived

        if not indicator:
            warnings.append(
                ValidationWarning(
                    sheet.name, row_no, "MISSING_INDICATOR", "indicator is blank; row skipped"
                )
            )
            continue

        value = parse_value(raw_value)
        if value is None:
            shown = "" if raw_value is None else str(raw_value)
            warnings.append(
                ValidationWarning(
                    sheet.name,
                    row_no,
                    "INVALID_VALUE",
                    f"value '{shown}' for '{indicator}' is not numeric; coerced to 0",
                )
            )
            value = 0.0

        org_cell = _text(_cell(row, hmap.index("org_unit")))
        org_unit = org_cell or synthesize_org_unit(
            site, options.org_unit_prefix, options.org_unit_max_length
        )
        records.append(
            CanonicalRecord(
                site=site,
                indicator=indicator,
                value=value,
                period=format_period(_cell(row, hmap.index("period")), default_period),
                org_unit=org_unit,
                sheet_name=sheet.name,
                row_index=row_no,
            )
        )

    return records, warnings, hmap


def normalize(
    workbook: RawWorkbook,
    file_name_hint: str | None = None,
    options: ParsingOptions | None = None,
) -> NormalizeResult:
    """Normalize a workbook into canonical records plus warnings.

    Pure: the same workbook, hint and options always give the same result.
    Duplicate indicators are kept; de-duplication is the matcher's concern.
    """
    options = options or ParsingOptions()
    profile = select_profile(file_name_hint)
    default_period = options.default_period or ""

    sheets = workbook.sheets[:1] if profile.first_sheet_only else workbook.sheets
    records: list[CanonicalRecord] = []
    warnings: list[ValidationWarning] = []
    header_maps: dict[str, HeaderMap] = {}
    for sheet in sheets:
        sheet_records, sheet_warnings, hmap = _normalize_sheet(
            sheet, profile, options, default_period
        )
        records.extend(sheet_records)
        warnings.extend(sheet_warnings)
        if hmap is not None:
            header_maps[sheet.name] = hmap

    logger.debug(
        "normalized file=%s profile=%s sheets=%d records=%d warnings=%d",
        file_name_hint,
        profile.name,
        len(sheets),
        len(records),
        len(warnings),
    )
    return NormalizeResult(
        records=records, warnings=warnings, profile=profile.name, header_maps=header_maps
    )


def normalize_file(path: Path, options: ParsingOptions | None = None) -> NormalizeResult:
    """Read ``path`` and normalize it (raises ParseError for unreadable files)."""
    return normalize(read_workbook(path), path.name, options)
