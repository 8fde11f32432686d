from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

"""Config dataclasses for indicator-sync.

Typed, immutable view of ``config/sync.yml`` produced by
``indicator_sync.config.loader.load_config``. Defaults here mirror the defaults
declared in the bundled JSON schema.
"""


class IndicatorVocabulary(Mapping[str, str]):
    """Read-only ordered mapping of indicator key -> backend data element code.

    Iteration order is the order of the configuration document and is the
    order of the matcher's output.
    """

    def __init__(self, entries: Mapping[str, str]) -> None:
        self._entries: dict[str, str] = {str(k): str(v) for k, v in entries.items()}

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:  # pragma: no cover (debug aid)
        return f"IndicatorVocabulary({self._entries!r})"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration for the postgres tracker backend.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ReportCoordinates:
    """Fixed coordinates of the value set every payload is submitted under."""
    data_set: str
    period: str
    org_unit: str
    category_option_combo: str
    attribute_option_combo: str | None = None  # Falls back to category_option_combo
    submit_unmatched: bool = True  # Submit DEFAULT matches as explicit zeros

    @property
    def effective_attribute_option_combo(self) -> str:
        return self.attribute_option_combo or self.category_option_combo


@dataclass(frozen=True)
class ParsingOptions:
    header_scan_rows: int = 10  # Rows scanned for a header candidate
    org_unit_prefix: str = "MW"  # Namespace token for synthesized org units
    org_unit_max_length: int = 10  # Slug truncation length
    default_period: str | None = None  # Used when a row has no period cell


@dataclass(frozen=True)
class MatchingOptions:
    fuzzy_threshold: float = 0.5  # Fuzzy score must be strictly above this
    duplicate_policy: str = "last"  # "last" | "max"


@dataclass(frozen=True)
class TrackerOptions:
    backend: str = "json"  # "json" | "postgres"
    path: str = "./state/file_tracking.json"  # JSON backend document
    table: str = "file_tracking"  # Postgres backend table
    retention_days: int = 30


@dataclass(frozen=True)
class SyncConfig:
    """Root configuration object for a sync run."""
    source_directory: str  # Directory listing supplied by the transfer side
    report: ReportCoordinates
    vocabulary: IndicatorVocabulary
    file_extensions: tuple[str, ...] = (".xlsx", ".xls", ".csv")
    parsing: ParsingOptions = field(default_factory=ParsingOptions)
    matching: MatchingOptions = field(default_factory=MatchingOptions)
    tracker: TrackerOptions = field(default_factory=TrackerOptions)
    output_directory: str = "./outbox"
    max_workers: int = 1
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
