#!/usr/bin/env python3
"""Sample workbook generation for local runs and load checks.

Writes synthetic exports in the three known layouts into a directory:

- ``DHIS2_HIV Indicators.xlsx``: indicator / value table under a title row
- ``Direct Queries - <period>.xlsx``: site / query / result per facility
- ``Q<period>_DQ_sites.xlsx``: facility data-quality scores

Indicator names are deliberately spelled the way field staff type them
(mixed case, extra words) so the matcher cascade gets exercised.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

INDICATOR_SPELLINGS = {
    "HTS_TST": ["HTS_TST", "hts_tst", "HTS TST total"],
    "HTS_TST_POS": ["HTS_TST_POS", "HTS TST POS"],
    "TX_NEW": ["TX_NEW", "Tx New Patients", "tx_new"],
    "TX_CURR": ["TX_CURR", "TX CURR (current on ART)"],
    "TX_PVLS": ["TX_PVLS", "Tx Pvls"],
    "PrEP_NEW": ["PrEP_NEW", "PREP New"],
    "PMTCT_STAT": ["PMTCT_STAT", "pmtct stat"],
    "TB_ART": ["TB_ART", "TB ART"],
}

SITES = [
    "Kamuzu Central Hospital",
    "Queen Elizabeth Central",
    "Zomba Central Hospital",
    "Mzuzu Central Hospital",
    "Bwaila District Hospital",
    "Area 25 Health Centre",
]


def _write(path: Path, rows: list[list[object]], sheet_name: str = "Sheet1") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(path, engine="openpyxl") as writer:
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)


def hiv_indicator_rows(rng: np.random.Generator, period: str) -> list[list[object]]:
    rows: list[list[object]] = [[f"HIV Programme Report {period}", None], [None, None]]
    rows.append(["Indicator", "Value"])
    for spellings in INDICATOR_SPELLINGS.values():
        rows.append([str(rng.choice(spellings)), int(rng.integers(0, 2_000))])
    return rows


def direct_query_rows(rng: np.random.Generator, sites: int) -> list[list[object]]:
    rows: list[list[object]] = [["Site", "Query", "Result"]]
    keys = list(INDICATOR_SPELLINGS)
    for site in SITES[:sites]:
        for key in rng.choice(keys, size=3, replace=False):
            rows.append([site, str(key), int(rng.integers(0, 500))])
    return rows


def dq_site_rows(rng: np.random.Generator, sites: int) -> list[list[object]]:
    rows: list[list[object]] = [["Facility", "DQ Score", "Completeness", "Timeliness"]]
    for site in SITES[:sites]:
        rows.append(
            [
                site,
                round(float(rng.uniform(60, 100)), 1),
                f"{int(rng.integers(70, 101))}%",
                round(float(rng.uniform(50, 100)), 1),
            ]
        )
    return rows


def generate(output_dir: Path, period: str, sites: int, seed: int) -> list[Path]:
    rng = np.random.default_rng(seed)
    targets = [
        (output_dir / "DHIS2_HIV Indicators.xlsx", hiv_indicator_rows(rng, period)),
        (output_dir / f"Direct Queries - {period}.xlsx", direct_query_rows(rng, sites)),
        (output_dir / f"Q{period}_DQ_sites.xlsx", dq_site_rows(rng, sites)),
    ]
    for path, rows in targets:
        _write(path, rows)
        print(f"Created workbook: {path} ({len(rows)} rows)")
    return [p for p, _ in targets]


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate sample indicator workbooks")
    parser.add_argument("output_dir", type=Path, help="Directory to write workbooks into")
    parser.add_argument("--period", default="202506", help="Reporting period (default: 202506)")
    parser.add_argument("--sites", type=int, default=4, help=f"Sites per file (max {len(SITES)})")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    args = parser.parse_args()

    if not 0 < args.sites <= len(SITES):
        print(f"Error: --sites must be between 1 and {len(SITES)}", file=sys.stderr)
        return 1

    generate(args.output_dir, args.period, args.sites, args.seed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
