"""Domain models for indicator-sync.

This package contains all domain model classes used throughout the application:
configuration, raw workbooks, canonical records, match results, payloads and
file tracking entries.
"""

from .canonical_record import CanonicalRecord, ValidationWarning
from .config_models import (
    DatabaseConfig,
    IndicatorVocabulary,
    MatchingOptions,
    ParsingOptions,
    ReportCoordinates,
    SyncConfig,
    TrackerOptions,
)
from .error_record import ErrorRecord
from .match_result import MatchResult, MatchStats, MatchType
from .payload import ImportSummary, ValueSetPayload
from .processing_result import FileOutcome, RunResult
from .source_file import FileInfo, FileRecord, FileStatus
from .workbook import RawSheet, RawWorkbook

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "IndicatorVocabulary",
    "MatchingOptions",
    "ParsingOptions",
    "ReportCoordinates",
    "SyncConfig",
    "TrackerOptions",
    # Parsing models
    "RawSheet",
    "RawWorkbook",
    "CanonicalRecord",
    "ValidationWarning",
    # Matching / payload models
    "MatchResult",
    "MatchStats",
    "MatchType",
    "ImportSummary",
    "ValueSetPayload",
    # Tracking / results
    "ErrorRecord",
    "FileInfo",
    "FileRecord",
    "FileStatus",
    "FileOutcome",
    "RunResult",
]
