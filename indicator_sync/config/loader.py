from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DatabaseConfig,
    IndicatorVocabulary,
    MatchingOptions,
    ParsingOptions,
    ReportCoordinates,
    SyncConfig,
    TrackerOptions,
)

"""Config loader.

Responsibilities:
- Load YAML config (default ``config/sync.yml``)
- Validate against the bundled JSON schema (``config_schema.json``)
- Apply defaults (tracker backend, thresholds, default period = report period)
- Build the typed SyncConfig
"""

SCHEMA_PATH = Path(__file__).parent / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/sync.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or invalid, or the config
            data fails schema validation (missing required keys, wrong types,
            unknown keys).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        path = ".".join(str(p) for p in e.absolute_path)
        where = f" at '{path}'" if path else ""
        raise ConfigError(f"config validation failed{where}: {e.message}") from e


def _normalize_extension(ext: str) -> str:
    return ext.lower()


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> SyncConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    rep = data["report"]
    report = ReportCoordinates(
        data_set=rep["data_set"],
        period=str(rep["period"]),  # YAML may read 202506 as int
        org_unit=rep["org_unit"],
        category_option_combo=rep["category_option_combo"],
        attribute_option_combo=rep.get("attribute_option_combo"),
        submit_unmatched=rep.get("submit_unmatched", True),
    )

    parsing_raw = data.get("parsing", {})
    default_period = parsing_raw.get("default_period", report.period)
    parsing = ParsingOptions(
        header_scan_rows=parsing_raw.get("header_scan_rows", 10),
        org_unit_prefix=parsing_raw.get("org_unit_prefix", "MW"),
        org_unit_max_length=parsing_raw.get("org_unit_max_length", 10),
        default_period=str(default_period),
    )

    matching_raw = data.get("matching", {})
    matching = MatchingOptions(
        fuzzy_threshold=float(matching_raw.get("fuzzy_threshold", 0.5)),
        duplicate_policy=matching_raw.get("duplicate_policy", "last"),
    )

    tracker_raw = data.get("tracker", {})
    tracker = TrackerOptions(
        backend=tracker_raw.get("backend", "json"),
        path=tracker_raw.get("path", "./state/file_tracking.json"),
        table=tracker_raw.get("table", "file_tracking"),
        retention_days=tracker_raw.get("retention_days", 30),
    )

    db_raw = data.get("database", {})
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    extensions = data.get("file_extensions", [".xlsx", ".xls", ".csv"])
    return SyncConfig(
        source_directory=data["source_directory"],
        report=report,
        vocabulary=IndicatorVocabulary(data["indicator_mapping"]),
        file_extensions=tuple(_normalize_extension(e) for e in extensions),
        parsing=parsing,
        matching=matching,
        tracker=tracker,
        output_directory=data.get("output_directory", "./outbox"),
        max_workers=data.get("max_workers", 1),
        database=db,
    )
