from __future__ import annotations

from pathlib import Path

import pytest

from indicator_sync.config.loader import ConfigError, load_config

"""Config schema contract: required keys, unknown keys and value constraints."""

BASE = """source_directory: ./data
report:
  data_set: ds
  period: "202506"
  org_unit: ou
  category_option_combo: coc
indicator_mapping:
  TX_NEW: abc
"""


def _write(temp_workdir: Path, text: str) -> Path:
    p = temp_workdir / "config" / "sync.yml"
    p.write_text(text, encoding="utf-8")
    return p


def test_minimal_config_is_valid(temp_workdir: Path):
    cfg = load_config(_write(temp_workdir, BASE))
    assert cfg.report.data_set == "ds"


@pytest.mark.parametrize(
    "missing",
    ["source_directory", "report", "indicator_mapping"],
)
def test_required_top_level_keys(temp_workdir: Path, missing: str):
    data = {
        "source_directory": "source_directory: ./data\n",
        "report": (
            "report:\n  data_set: ds\n  period: '202506'\n"
            "  org_unit: ou\n  category_option_combo: coc\n"
        ),
        "indicator_mapping": "indicator_mapping:\n  TX_NEW: abc\n",
    }
    text = "".join(v for k, v in data.items() if k != missing)
    with pytest.raises(ConfigError, match=f"'{missing}' is a required property"):
        load_config(_write(temp_workdir, text))


def test_unknown_key_rejected(temp_workdir: Path):
    with pytest.raises(ConfigError, match="Additional properties are not allowed"):
        load_config(_write(temp_workdir, BASE + "sheet_mappings: {}\n"))


def test_report_requires_org_unit(temp_workdir: Path):
    text = BASE.replace("  org_unit: ou\n", "")
    with pytest.raises(ConfigError, match="at 'report'"):
        load_config(_write(temp_workdir, text))


def test_empty_mapping_rejected(temp_workdir: Path):
    text = BASE.replace("indicator_mapping:\n  TX_NEW: abc\n", "indicator_mapping: {}\n")
    with pytest.raises(ConfigError, match="config validation failed at 'indicator_mapping'"):
        load_config(_write(temp_workdir, text))


def test_duplicate_policy_enum(temp_workdir: Path):
    with pytest.raises(ConfigError, match="at 'matching.duplicate_policy'"):
        load_config(_write(temp_workdir, BASE + "matching:\n  duplicate_policy: first\n"))


def test_tracker_table_name_pattern(temp_workdir: Path):
    with pytest.raises(ConfigError, match="at 'tracker.table'"):
        load_config(_write(temp_workdir, BASE + "tracker:\n  table: 'x; DROP TABLE y'\n"))


def test_max_workers_minimum(temp_workdir: Path):
    with pytest.raises(ConfigError, match="at 'max_workers'"):
        load_config(_write(temp_workdir, BASE + "max_workers: 0\n"))
