from __future__ import annotations

import re
from pathlib import Path

from indicator_sync.cli import main as cli_main

"""SUMMARY line and per-file line format contract."""

SUMMARY_RE = re.compile(
    r"^SUMMARY files=(\d+) processed=(\d+) skipped=(\d+) failed=(\d+) records=(\d+) "
    r"warnings=(\d+) exact=(\d+) partial=(\d+) unmatched=(\d+) elapsed_sec=(\d+(\.\d+)?)$"
)
FILE_RE = re.compile(r"^INFO file=(?P<name>.+?) status=(processed|skipped_unchanged|failed)\b")


def test_summary_line_format(temp_workdir: Path, write_config, write_workbook, hiv_rows, capsys):
    write_workbook(temp_workdir / "data" / "DHIS2_HIV Indicators.xlsx", {"Report": hiv_rows})
    assert cli_main([]) == 0
    lines = capsys.readouterr().out.splitlines()

    summaries = [line for line in lines if line.startswith("SUMMARY")]
    assert len(summaries) == 1
    m = SUMMARY_RE.match(summaries[0])
    assert m is not None, summaries[0]
    files, processed, skipped, failed, records, warnings, exact, partial, unmatched = map(int, m.groups()[:9])
    assert (files, processed, skipped, failed) == (1, 1, 0, 0)
    assert records == 3
    assert warnings == 0
    # TX_NEW exact, TX_CURR case-insensitive, HTS_TST fuzzy
    assert (exact, partial, unmatched) == (2, 1, 0)

    file_lines = [line for line in lines if FILE_RE.match(line)]
    assert len(file_lines) == 1
    assert "profile=hiv_indicators" in file_lines[0]
    assert "imported=3" in file_lines[0]


def test_summary_is_last_line(temp_workdir: Path, write_config, capsys):
    cli_main([])
    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    assert lines[-1].startswith("SUMMARY ")
