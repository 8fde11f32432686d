# Shared pytest fixtures
from __future__ import annotations
import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from indicator_sync.logging.init import reset_logging


@pytest.fixture(autouse=True)
def clean_logging():
    # Handlers bind sys.stdout at setup time; rebuild them per test so capsys sees output
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """source_directory: ./data
report:
  data_set: BfMAe6Itzgt
  period: 202506
  org_unit: rXoaHGAXWy9
  category_option_combo: HllvX50cXC0
indicator_mapping:
  TX_NEW: dwEq7wi6nXV
  TX_CURR: ZiOVcrSjSYe
  HTS_TST: FTRrcoaog83
tracker:
  backend: json
  path: ./state/file_tracking.json
output_directory: ./outbox
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "sync.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def write_workbook() -> Callable[..., Path]:
    """Factory writing header-less sheets (``{sheet: rows}``) to an .xlsx file."""

    def _write(path: Path, sheets: dict[str, list[list[object]]]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
        return path

    return _write


@pytest.fixture()
def hiv_rows() -> list[list[object]]:
    return [
        ["HIV Programme Report June 2025", None],
        [None, None],
        ["Indicator", "Value"],
        ["TX_NEW", 85],
        ["tx_curr", 1200],
        ["HTS TST total", 430],
    ]
